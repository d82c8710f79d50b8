# src/templates.py
"""
Template loading and rendering utilities for Okkake.

This module provides:
- A shared Jinja2 Environment for rendering templates
- Embedded templates for Workers environment compatibility
- Helper functions for common rendering patterns
"""

from collections.abc import Callable
from datetime import datetime

from jinja2 import BaseLoader, Environment, TemplateNotFound

from utils import format_rfc3339

# =============================================================================
# Embedded Templates (for Workers environment)
# =============================================================================

_EMBEDDED_TEMPLATES = {
    "index.html": """<!DOCTYPE html>
<html lang="ja">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ site.name }}</title>
    <style>
        body { font-family: system-ui, sans-serif; max-width: 720px; margin: 0 auto; padding: 1rem; line-height: 1.6; }
        header { border-bottom: 1px solid #ddd; margin-bottom: 1rem; }
        code { background: #f4f4f4; padding: 0.1rem 0.3rem; word-break: break-all; }
        footer { margin-top: 2rem; padding-top: 1rem; border-top: 1px solid #ddd; color: #666; }
    </style>
</head>
<body>
    <header>
        <h1>{{ site.name }}</h1>
        <p>小説家になろうの既存話を、購読を始めた日から1日1話ずつ再配信するAtomフィードです。</p>
    </header>

    <main>
        <h2>使い方</h2>
        <p>フィードリーダーに次のURLを登録してください（<code>{{ example_ncode }}</code> の部分を作品のNコードに置き換えます）。</p>
        <p><code>{{ site.url }}/novels/{{ example_ncode }}/atom.xml</code></p>
        <p>R18作品（ノクターンノベルズ等）の場合:</p>
        <p><code>{{ site.url }}/r18novels/{{ example_ncode }}/atom.xml</code></p>
        <p>
            初回アクセス時に <code>start</code> パラメータ付きのURLへリダイレクトされます。
            その時刻から1日ごとに1話ずつ、直近{{ window_size }}話までがフィードに現れます。
        </p>
    </main>

    <footer>
        <p>Powered by {{ site.name }}</p>
    </footer>
</body>
</html>""",
    "feed.atom.xml": """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title type="text">{{ feed.title }}</title>
  <subtitle type="text">{{ feed.subtitle }}</subtitle>
  <updated>{{ feed.updated_at | rfc3339 }}</updated>
  <generator version="{{ feed.generator_version }}">{{ site.name }}</generator>
  <link rel="self" type="application/atom+xml" href="{{ feed.self_url }}"/>
  <link rel="alternate" type="text/html" href="{{ feed.alternate_url }}"/>
  <id>{{ feed.id }}</id>
  <author>
    <name>{{ feed.author_name }}</name>
{% if feed.author_uri %}
    <uri>{{ feed.author_uri }}</uri>
{% endif %}
  </author>
{% for entry in entries %}
  <entry>
    <title type="text">{{ entry.title }}</title>
    <published>{{ entry.published_at | rfc3339 }}</published>
    <updated>{{ entry.updated_at | rfc3339 }}</updated>
    <link rel="alternate" type="text/html" href="{{ entry.alternate_url }}"/>
    <id>{{ entry.canonical_id }}</id>
  </entry>
{% endfor %}
</feed>
""",
}

# =============================================================================
# Template Names Constants
# =============================================================================

TEMPLATE_INDEX = "index.html"
TEMPLATE_FEED_ATOM = "feed.atom.xml"


# =============================================================================
# Template Loader
# =============================================================================


class DictLoader(BaseLoader):
    """Load templates from a dictionary."""

    def __init__(self, templates: dict[str, str]):
        self.templates = templates

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str, Callable[[], bool]]:
        if template not in self.templates:
            raise TemplateNotFound(template)
        return self.templates[template], template, lambda: True


# =============================================================================
# Shared Jinja2 Environment
# =============================================================================

_jinja_env: Environment | None = None


def _rfc3339_filter(value: datetime) -> str:
    return format_rfc3339(value)


def _create_environment(loader: BaseLoader | None = None) -> Environment:
    """Create a Jinja2 environment with appropriate settings."""
    if loader is None:
        loader = DictLoader(_EMBEDDED_TEMPLATES)

    env = Environment(
        loader=loader,
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["rfc3339"] = _rfc3339_filter
    return env


def get_jinja_env() -> Environment:
    """Get the shared Jinja2 environment."""
    global _jinja_env
    if _jinja_env is None:
        _jinja_env = _create_environment()
    return _jinja_env


def reset_jinja_env() -> None:
    """Reset the shared Jinja2 environment (for testing)."""
    global _jinja_env
    _jinja_env = None


# =============================================================================
# Template Rendering Helpers
# =============================================================================


def render_template(template_name: str, **context) -> str:
    """Render a template with the given context."""
    env = get_jinja_env()
    template = env.get_template(template_name)
    return template.render(**context)
