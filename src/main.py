# src/main.py
"""
Okkake - Replay feeds for Shosetsuka ni Narou on Cloudflare Python Workers

Main Worker entrypoint:
- fetch(): HTTP request handling (feeds are generated on-demand)

A feed URL looks like /novels/n4830bu/atom.xml?start=2026-01-01T09:00:00Z.
Each day after ``start`` one more already-published episode appears in the
feed, up to the most recent 100.
"""

from datetime import UTC, datetime
from urllib.parse import urlencode

from workers import Response, WorkerEntrypoint

from atom import ATOM_CONTENT_TYPE, build_feed_metadata, render_atom_feed
from config import (
    get_feed_cache_max_age,
    get_freshness_policy,
    get_http_timeout,
    get_site_config,
    get_user_agent,
)
from freshness import D1NovelStore, FreshnessEngine
from models import Category, NovelFetchError, NovelKey
from ncode import Ncode, NcodeParseError
from observability import PageServeEvent, Timer, emit_event
from route_dispatcher import RouteDispatcher, RouteMatch, create_default_routes
from schedule import REPLAY_WINDOW_SIZE, build_schedule
from scraping import SyosetuFetcher
from templates import TEMPLATE_INDEX, render_template
from utils import (
    feed_response,
    format_rfc3339,
    get_query_param,
    get_request_path,
    html_response,
    json_error,
    json_response,
    log_error,
    log_op,
    parse_iso_datetime,
    redirect_response,
    truncate_error,
    truncate_to_minute,
)
from wrappers import SafeD1

EXAMPLE_NCODE = "n4830bu"

_dispatcher = RouteDispatcher(create_default_routes())


class Default(WorkerEntrypoint):
    """
    Main Worker entrypoint handling HTTP requests:
    - /                          landing page
    - /health                    liveness check
    - /novels/{ncode}/atom.xml   replay feed (ncode.syosetu.com)
    - /r18novels/{ncode}/atom.xml replay feed (novel18.syosetu.com)
    """

    # =========================================================================
    # HTTP Handler
    # =========================================================================

    async def fetch(self, request):
        """Handle HTTP requests."""
        path = get_request_path(request.url)

        event = PageServeEvent(
            method=request.method,
            path=path,
            user_agent=(request.headers.get("user-agent") or "")[:200],
            country=getattr(request.cf, "country", None) if hasattr(request, "cf") else None,
            colo=getattr(request.cf, "colo", None) if hasattr(request, "cf") else None,
        )

        with Timer() as timer:
            try:
                match = _dispatcher.match(path, request.method)
                if match is None:
                    response = Response("Not Found", status=404)
                    event.content_type = "error"
                else:
                    event.route = match.route_name
                    event.content_type = match.content_type
                    event.cache_status = match.cache_status
                    if match.content_type == "atom":
                        response = await self._serve_feed(request, match, event)
                    elif match.content_type == "health":
                        response = json_response({"status": "ok"})
                    else:
                        response = self._serve_index()

            except Exception as e:
                log_error("request_error", e, path=path)
                event.wall_time_ms = timer.elapsed()
                event.status_code = 500
                emit_event(event)
                raise

        event.wall_time_ms = timer.elapsed()
        event.status_code = response.status
        emit_event(event)

        return response

    def _serve_index(self):
        """Render the landing page."""
        html = render_template(
            TEMPLATE_INDEX,
            site=get_site_config(self.env),
            example_ncode=EXAMPLE_NCODE,
            window_size=REPLAY_WINDOW_SIZE,
        )
        return html_response(html)

    async def _serve_feed(self, request, match: RouteMatch, event: PageServeEvent):
        """Generate and serve a replay feed on-demand."""
        category = Category.from_route_prefix(match.path.split("/")[1])
        try:
            ncode = Ncode.parse(match.path_params["ncode"])
        except NcodeParseError as e:
            log_op("invalid_ncode", value=e.value[:50])
            return json_error("Invalid ncode", status=400)
        key = NovelKey(category=category, ncode=ncode)

        now = datetime.now(UTC)
        start_param = get_query_param(request.url, "start")
        if not start_param:
            start = truncate_to_minute(now)
            query = urlencode({"start": format_rfc3339(start)})
            event.content_type = "redirect"
            return redirect_response(f"{key.feed_path()}?{query}", status=307)

        # An unencoded "+09:00" offset arrives as " 09:00"
        start = parse_iso_datetime(start_param.replace(" ", "+"))
        if start is None:
            return json_error("Invalid start parameter", status=400)

        try:
            novel = await self._get_engine().get_novel(key, now)
        except NovelFetchError as e:
            log_error("novel_unavailable", e, category=category.value, ncode=str(ncode))
            return json_error(f"Could not load novel: {truncate_error(e)}", status=502)

        entries = build_schedule(key, start, now, novel.subtitles)
        site = get_site_config(self.env)
        metadata = build_feed_metadata(site["url"], key, novel, start, now)
        event.entries_served = len(entries)

        body = render_atom_feed(metadata, entries, site)
        event.response_size_bytes = len(body.encode("utf-8"))
        return feed_response(
            body,
            ATOM_CONTENT_TYPE,
            cache_max_age=get_feed_cache_max_age(self.env),
        )

    # =========================================================================
    # Collaborators
    # =========================================================================

    def _get_engine(self) -> FreshnessEngine:
        return FreshnessEngine(
            store=D1NovelStore(SafeD1(self.env.DB)),
            fetcher=self._get_fetcher(),
            policy=get_freshness_policy(self.env),
        )

    def _get_fetcher(self) -> SyosetuFetcher:
        return SyosetuFetcher(
            user_agent=get_user_agent(self.env),
            timeout_seconds=get_http_timeout(self.env),
        )
