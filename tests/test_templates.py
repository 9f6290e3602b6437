"""
Test 7: Template Engine (templates/engine.py)

Tests id mapping, layout wrapping, the not-found fallback, context
injection and error wrapping.
"""

import pytest

from strix import AppConfig, RouteTable, TemplateEngine
from strix.faults import TemplateFault

from tests.conftest import make_ctx


@pytest.fixture
def template_dir(tmp_path):
    (tmp_path / "users").mkdir()
    (tmp_path / "errors").mkdir()
    (tmp_path / "layout.html").write_text("<main>{{ content }}</main><title>{{ title }}</title>")
    (tmp_path / "home.html").write_text("<h1>{{ title }}</h1>")
    (tmp_path / "users" / "index.html").write_text(
        "{% for u in users %}<li>{{ u.name }}</li>{% endfor %}"
    )
    (tmp_path / "errors" / "404.html").write_text("not found: {{ missing }}")
    (tmp_path / "helpers.html").write_text(
        "{{ str_slug('Hello World') }}|{{ 'abcdef' | str_limit(3) }}|{{ asset('app.css') }}"
    )
    (tmp_path / "broken.html").write_text("{{ missing_function() }}")
    (tmp_path / "ctx.html").write_text(
        "{{ request.path }}|{{ config.name }}|{{ url_for('show', id=3) }}|{{ session.get('k', 'none') }}"
    )
    (tmp_path / "form.html").write_text("{{ csrf_field() }}")
    return tmp_path


@pytest.fixture
def engine(template_dir):
    return TemplateEngine([template_dir], base_url="http://example.com")


# ============================================================================
# Basics
# ============================================================================

class TestTemplateBasics:

    def test_template_name(self, engine):
        assert engine.template_name("users/index") == "users/index.html"
        assert engine.template_name("/home.html") == "home.html"

    def test_exists(self, engine):
        assert engine.exists("home")
        assert not engine.exists("nope")

    @pytest.mark.asyncio
    async def test_render_with_layout(self, engine):
        html = await engine.render("home", {"title": "Hi"})
        assert html == "<main><h1>Hi</h1></main><title>Hi</title>"

    @pytest.mark.asyncio
    async def test_render_without_layout(self, engine):
        assert await engine.render("home", {"title": "Hi"}, layout=None) == "<h1>Hi</h1>"

    @pytest.mark.asyncio
    async def test_missing_layout_is_skipped(self, template_dir):
        engine = TemplateEngine([template_dir], layout="no_such_layout")
        assert await engine.render("home", {"title": "x"}) == "<h1>x</h1>"

    @pytest.mark.asyncio
    async def test_autoescape(self, engine):
        html = await engine.render("home", {"title": "<script>"}, layout=None)
        assert html == "<h1>&lt;script&gt;</h1>"

    @pytest.mark.asyncio
    async def test_loop_over_rows(self, engine):
        html = await engine.render("users/index", {"users": [{"name": "A"}, {"name": "B"}]}, layout=None)
        assert html == "<li>A</li><li>B</li>"

    @pytest.mark.asyncio
    async def test_helper_globals_and_filters(self, engine):
        html = await engine.render("helpers", layout=None)
        assert html == "hello-world|abc...|http://example.com/assets/app.css"

    @pytest.mark.asyncio
    async def test_render_error_is_template_fault(self, engine):
        with pytest.raises(TemplateFault):
            await engine.render("broken", layout=None)

    def test_register_global_and_filter(self, engine):
        engine.register_global("answer", 42)
        engine.register_filter("shout", str.upper)
        assert engine.env.globals["answer"] == 42
        assert engine.env.filters["shout"] is str.upper


# ============================================================================
# Responses and not-found fallback
# ============================================================================

class TestRenderResponse:

    @pytest.mark.asyncio
    async def test_html_response(self, engine):
        response = await engine.render_response("home", {"title": "T"}, status=201)
        assert response.status == 201
        assert response.headers["content-type"].startswith("text/html")

    @pytest.mark.asyncio
    async def test_missing_template_renders_404_page(self, engine):
        response = await engine.render_response("ghost", layout=None)
        assert response.status == 404
        assert response.body == b"not found: ghost"

    @pytest.mark.asyncio
    async def test_missing_404_page_falls_back_to_text(self, tmp_path):
        engine = TemplateEngine([tmp_path])
        response = await engine.render_response("ghost")
        assert response.status == 404
        assert response.body == b"Page not found: ghost"


# ============================================================================
# Context injection
# ============================================================================

class TestContextInjection:

    @pytest.mark.asyncio
    async def test_request_config_routes_session(self, engine):
        routes = RouteTable()
        routes.get("/users/{id}", lambda ctx, id: "", name="show")
        ctx = make_ctx("GET", "/here", config=AppConfig(name="Cfg"), routes=routes)
        ctx.session.set("k", "v")

        html = await engine.render("ctx", ctx=ctx, layout=None)
        assert html == "/here|Cfg|/users/3|v"

    @pytest.mark.asyncio
    async def test_session_not_started_by_plain_render(self, engine):
        ctx = make_ctx("GET", "/here", config=AppConfig(), routes=RouteTable())
        await engine.render("home", {"title": "x"}, ctx=ctx)
        assert not ctx.session_started

    @pytest.mark.asyncio
    async def test_csrf_field_starts_session(self, engine):
        ctx = make_ctx()
        html = await engine.render("form", ctx=ctx, layout=None)
        token = ctx.session.get("_csrf_token")
        assert token
        assert html == f'<input type="hidden" name="_csrf_token" value="{token}">'

    @pytest.mark.asyncio
    async def test_caller_data_wins(self, engine):
        ctx = make_ctx("GET", "/here")
        html = await engine.render("home", {"title": "mine", "request": "override"}, ctx=ctx, layout=None)
        assert html == "<h1>mine</h1>"
