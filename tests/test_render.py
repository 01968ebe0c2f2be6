"""Tests for the rendering pipeline: request context, internal render,
single-flight cache and strategy selection in the resolver.
"""

from __future__ import annotations

import threading
from typing import Any, Generator, Optional

import pytest

from rankbridge.builder.base import BuilderRenderer, TemplateResolver
from rankbridge.cms.models import ContentItem
from rankbridge.cms.posts import create_post
from rankbridge.cms.site import SqliteCms
from rankbridge.cms.store import get_connection, init_db
from rankbridge.exceptions import ContextReentryError, InvalidContentIdentifier
from rankbridge.render.cache import SingleFlightCache
from rankbridge.render.context import current_request_context, simulated_request_context
from rankbridge.render.internal import render_internal
from rankbridge.render.models import ContentSource, RenderStage, RequestContext
from rankbridge.render.resolver import ContentResolver, validate_post_id
from rankbridge.scraper.extractor import DomExtractor

BUILDER_META = {"_breakdance_data": '{"tree_json_string": "{}"}'}


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeRenderer(BuilderRenderer):
    """Returns canned HTML per post id and records the context it saw."""

    def __init__(self, outputs: Optional[dict[int, Any]] = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[tuple[int, Optional[RequestContext]]] = []

    def render(self, post_id: int, context: RequestContext) -> str:
        self.calls.append((post_id, current_request_context()))
        output = self.outputs.get(post_id, "")
        if isinstance(output, Exception):
            raise output
        return output


class FixedTemplate(TemplateResolver):
    def __init__(self, template_id: Optional[int]) -> None:
        self.template_id = template_id

    def template_for_request(self, context: RequestContext) -> Optional[int]:
        return self.template_id


class FakeFetch:
    """Stands in for :func:`fetch_rendered_page`."""

    def __init__(self, html: str = "") -> None:
        self.html = html
        self.calls: list[dict[str, Any]] = []

    def __call__(self, url: str, preview_url: Optional[str] = None, cookies: Optional[dict[str, str]] = None) -> str:
        self.calls.append({"url": url, "preview_url": preview_url, "cookies": cookies})
        return self.html


class BlockingFetch(FakeFetch):
    """A fetch that blocks every caller until ``release`` is set."""

    def __init__(self, html: str = "") -> None:
        super().__init__(html)
        self.started = threading.Event()
        self.release = threading.Event()

    def __call__(self, url: str, preview_url: Optional[str] = None, cookies: Optional[dict[str, str]] = None) -> str:
        self.started.set()
        self.release.wait(timeout=5)
        return super().__call__(url, preview_url=preview_url, cookies=cookies)


PAGE = (
    "<html><body><nav>Home | Shop</nav>"
    "<main><h1>Fetched title</h1><p>Fetched body.</p></main>"
    "<footer>© Site</footer></body></html>"
)


@pytest.fixture()
def cms() -> Generator[SqliteCms, None, None]:
    conn = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(conn)
    yield SqliteCms(conn, "https://site.test")
    conn.close()


def _resolver(cms: SqliteCms, renderer: Optional[BuilderRenderer] = None, fetch: Optional[FakeFetch] = None,
              templates: Optional[TemplateResolver] = None) -> ContentResolver:
    return ContentResolver(
        cms,
        renderer=renderer,
        templates=templates,
        fetch=fetch or FakeFetch(),
        extractor=DomExtractor(),
    )


def _item(post_id: int = 1) -> ContentItem:
    return ContentItem(
        id=post_id, post_type="page", status="publish", title="T", slug=None,
        body="", author_id=None, created_at=0, updated_at=0,
    )


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------

class TestRequestContext:
    def test_inactive_by_default(self) -> None:
        assert current_request_context() is None

    def test_active_inside_block(self) -> None:
        with simulated_request_context(_item(3)) as context:
            assert current_request_context() is context
            assert context.post_id == 3
            assert context.query_vars == {"p": 3, "post_type": "page"}
        assert current_request_context() is None

    def test_restored_when_block_raises(self) -> None:
        with pytest.raises(RuntimeError):
            with simulated_request_context(_item(3)):
                raise RuntimeError("boom")
        assert current_request_context() is None

    def test_reentry_for_same_item_allowed(self) -> None:
        with simulated_request_context(_item(3)) as outer:
            with simulated_request_context(_item(3)):
                pass
            assert current_request_context() is outer

    def test_reentry_for_other_item_rejected(self) -> None:
        with simulated_request_context(_item(3)) as outer:
            with pytest.raises(ContextReentryError):
                with simulated_request_context(_item(4)):
                    pass
            assert current_request_context() is outer

    def test_other_threads_do_not_see_the_context(self) -> None:
        seen: list[Optional[RequestContext]] = []
        with simulated_request_context(_item(3)):
            worker = threading.Thread(target=lambda: seen.append(current_request_context()))
            worker.start()
            worker.join()
        assert seen == [None]


# ---------------------------------------------------------------------------
# Internal render
# ---------------------------------------------------------------------------

class TestRenderInternal:
    def test_builder_stage(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", meta=BUILDER_META)
        renderer = FakeRenderer({item.id: "<div class='breakdance'>Hi</div>"})
        result = render_internal(item, cms, renderer)
        assert result.ok
        assert result.stage is RenderStage.BUILDER
        assert result.failure is None

    def test_renderer_observes_the_simulated_context(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", meta=BUILDER_META)
        renderer = FakeRenderer({item.id: "<p>Hi</p>"})
        render_internal(item, cms, renderer)
        (post_id, seen), = renderer.calls
        assert post_id == item.id
        assert seen is not None and seen.post_id == item.id
        assert current_request_context() is None

    def test_failure_falls_back_to_raw_body(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", body="Stored text", meta=BUILDER_META)
        renderer = FakeRenderer({item.id: ValueError("corrupt tree")})
        result = render_internal(item, cms, renderer)
        assert result.stage is RenderStage.RAW
        assert result.html == "<p>Stored text</p>"
        assert "corrupt tree" in (result.failure or "")
        assert current_request_context() is None

    def test_template_stage(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x")
        renderer = FakeRenderer({99: "<div class='breakdance'>From template</div>"})
        result = render_internal(item, cms, renderer, FixedTemplate(99))
        assert result.stage is RenderStage.TEMPLATE
        assert "From template" in result.html
        assert renderer.calls[0][1].post_id == item.id  # type: ignore[union-attr]

    def test_non_builder_without_template_uses_raw(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", body="Plain")
        renderer = FakeRenderer()
        result = render_internal(item, cms, renderer, FixedTemplate(None))
        assert result.stage is RenderStage.RAW
        assert renderer.calls == []


# ---------------------------------------------------------------------------
# SingleFlightCache
# ---------------------------------------------------------------------------

class TestSingleFlightCache:
    def test_computes_once(self) -> None:
        cache: SingleFlightCache[int, str] = SingleFlightCache()
        calls = []

        def compute() -> str:
            calls.append(1)
            return "value"

        assert cache.get_or_compute(1, compute) == "value"
        assert cache.get_or_compute(1, compute) == "value"
        assert len(calls) == 1
        assert 1 in cache and len(cache) == 1

    def test_rejected_values_are_not_stored(self) -> None:
        cache: SingleFlightCache[int, str] = SingleFlightCache()
        calls = []

        def compute() -> str:
            calls.append(1)
            return ""

        cache.get_or_compute(1, compute)
        cache.get_or_compute(1, compute)
        assert len(calls) == 2
        assert 1 not in cache

    def test_errors_propagate_and_are_not_stored(self) -> None:
        cache: SingleFlightCache[int, str] = SingleFlightCache()

        def boom() -> str:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_compute(1, boom)
        assert cache.get_or_compute(1, lambda: "ok") == "ok"

    def test_clear(self) -> None:
        cache: SingleFlightCache[int, str] = SingleFlightCache()
        cache.get_or_compute(1, lambda: "v")
        cache.clear()
        assert cache.get(1) is None

    def test_concurrent_callers_share_one_computation(self) -> None:
        cache: SingleFlightCache[int, str] = SingleFlightCache()
        started = threading.Event()
        release = threading.Event()
        calls = []
        results: list[str] = []

        def compute() -> str:
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return "shared"

        def worker() -> None:
            results.append(cache.get_or_compute(7, compute))

        first = threading.Thread(target=worker)
        first.start()
        started.wait(timeout=5)
        others = [threading.Thread(target=worker) for _ in range(4)]
        for t in others:
            t.start()
        release.set()
        for t in [first, *others]:
            t.join(timeout=5)

        assert len(calls) == 1
        assert results == ["shared"] * 5


# ---------------------------------------------------------------------------
# ContentResolver
# ---------------------------------------------------------------------------

class TestValidatePostId:
    @pytest.mark.parametrize("bad", [0, -1, True, "5", 1.5, None])
    def test_rejects(self, bad: object) -> None:
        with pytest.raises(InvalidContentIdentifier):
            validate_post_id(bad)

    def test_accepts_positive_int(self) -> None:
        assert validate_post_id(12) == 12


class TestContentResolver:
    def test_internal_render_source(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish", meta=BUILDER_META)
        fetch = FakeFetch(PAGE)
        resolver = _resolver(cms, FakeRenderer({item.id: '<div class="breakdance"><p>Hi</p></div>'}), fetch)

        rendered = resolver.resolve(item.id)
        assert rendered.source is ContentSource.INTERNAL_RENDER
        assert "<p>Hi</p>" in rendered.content
        assert fetch.calls == []

    def test_internal_failure_falls_back_to_fetch(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish", slug="x", meta=BUILDER_META)
        fetch = FakeFetch(PAGE)
        resolver = _resolver(cms, FakeRenderer({item.id: RuntimeError("boom")}), fetch)

        rendered = resolver.resolve(item.id)
        assert rendered.source is ContentSource.FRONTEND_FETCH_FALLBACK
        assert "Fetched body." in rendered.content
        assert "Home | Shop" not in rendered.content

    def test_no_renderer_uses_fetch(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish", meta=BUILDER_META)
        rendered = _resolver(cms, None, FakeFetch(PAGE)).resolve(item.id)
        assert rendered.source is ContentSource.FRONTEND_FETCH_NO_INTERNAL

    def test_raw_fallback(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish", body="Stored words")
        rendered = _resolver(cms, None, FakeFetch("")).resolve(item.id)
        assert rendered.source is ContentSource.RAW_FALLBACK
        assert rendered.content == "<p>Stored words</p>"

    def test_everything_empty_is_not_cached(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish")
        fetch = FakeFetch("")
        resolver = _resolver(cms, None, fetch)

        first = resolver.resolve(item.id)
        assert first.content == ""
        assert first.source is None
        assert not first
        resolver.resolve(item.id)
        assert len(fetch.calls) == 2

    def test_cache_hit_returns_same_result(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish")
        fetch = FakeFetch(PAGE)
        resolver = _resolver(cms, None, fetch)

        assert resolver.resolve(item.id) is resolver.resolve(item.id)
        assert len(fetch.calls) == 1

    def test_concurrent_resolves_fetch_once(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish", slug="x")
        fetch = BlockingFetch(PAGE)
        resolver = _resolver(cms, None, fetch)
        results = []

        def worker() -> None:
            results.append(resolver.resolve(item.id))

        first = threading.Thread(target=worker)
        first.start()
        fetch.started.wait(timeout=5)
        second = threading.Thread(target=worker)
        second.start()
        fetch.release.set()
        for t in (first, second):
            t.join(timeout=5)

        assert len(fetch.calls) == 1
        assert len(results) == 2
        assert results[0] is results[1]
        assert "Fetched body." in results[0].content

    def test_unknown_item_is_empty(self, cms: SqliteCms) -> None:
        fetch = FakeFetch(PAGE)
        rendered = _resolver(cms, None, fetch).resolve(404)
        assert rendered.content == ""
        assert rendered.source is None
        assert fetch.calls == []

    def test_invalid_id_raises(self, cms: SqliteCms) -> None:
        with pytest.raises(InvalidContentIdentifier):
            _resolver(cms).resolve(0)

    def test_published_item_fetches_permalink_without_cookies(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="publish", slug="about")
        fetch = FakeFetch(PAGE)
        _resolver(cms, None, fetch).resolve(item.id, cookies={"session": "abc"})
        assert fetch.calls == [{"url": "https://site.test/about/", "preview_url": None, "cookies": None}]

    def test_draft_item_fetches_preview_with_cookies(self, cms: SqliteCms) -> None:
        item = create_post(cms.conn, title="x", status="draft", slug="about")
        fetch = FakeFetch(PAGE)
        _resolver(cms, None, fetch).resolve(item.id, cookies={"session": "abc"})
        preview = f"https://site.test/?p={item.id}&preview=true"
        assert fetch.calls == [{"url": preview, "preview_url": preview, "cookies": {"session": "abc"}}]

    def test_internal_available(self, cms: SqliteCms) -> None:
        assert _resolver(cms, FakeRenderer()).internal_available
        assert not _resolver(cms, None).internal_available
