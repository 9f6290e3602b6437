"""
Test 3: Auto-Router and Dispatcher (routing/autoroute.py, routing/dispatcher.py)

Tests controller registration, convention derivation, resolution
precedence and the not-found path.
"""

import json

import pytest

from strix import CONTINUE, Controller, ControllerRegistry, Gate, Halt, Response, RouteTable
from strix.faults import ControllerRegistrationFault, HandlerFault
from strix.routing import Dispatcher, coerce_response, derive_target

from tests.conftest import make_ctx


class HomeController(Controller):
    def index(self, ctx):
        return "home"

    async def about(self, ctx):
        return "about"


class UsersController(Controller):
    def id(self, ctx):
        return "auto"

    def show(self, ctx, id):
        return {"id": id}

    def pair(self, ctx, a, b="default"):
        return [a, b]

    def _private(self, ctx):
        return "hidden"


class BaseActions(Controller):
    def ping(self, ctx):
        return "pong"


class ChildController(BaseActions):
    def own(self, ctx):
        return "own"


class Calls:
    def __init__(self):
        self.handler_ran = False


# ============================================================================
# Derivation
# ============================================================================

class TestDeriveTarget:

    def test_root_defaults(self):
        assert derive_target("/") == ("HomeController", "index", ())

    def test_controller_only(self):
        assert derive_target("/user") == ("UserController", "index", ())

    def test_full_path(self):
        assert derive_target("/user/show/12/extra") == ("UserController", "show", ("12", "extra"))

    def test_only_first_character_upper_cased(self):
        assert derive_target("/blogPost/list")[0] == "BlogPostController"


# ============================================================================
# Registry
# ============================================================================

class TestControllerRegistry:

    def test_register_records_public_actions(self):
        registry = ControllerRegistry()
        registry.register(UsersController)
        assert registry.actions("UsersController") == {"id", "show", "pair"}
        assert "UsersController" in registry
        assert len(registry) == 1

    def test_inherited_actions_below_framework_base(self):
        registry = ControllerRegistry()
        registry.register(ChildController)
        assert registry.actions("ChildController") == {"ping", "own"}

    def test_framework_helpers_are_not_actions(self):
        registry = ControllerRegistry()
        registry.register(HomeController)
        assert "render" not in registry.actions("HomeController")
        assert "redirect" not in registry.actions("HomeController")

    def test_rejects_non_controller(self):
        with pytest.raises(ControllerRegistrationFault):
            ControllerRegistry().register(dict)

    def test_rejects_bad_suffix(self):
        with pytest.raises(ControllerRegistrationFault):
            ControllerRegistry().register(BaseActions)

    def test_rejects_name_clash(self):
        registry = ControllerRegistry()
        registry.register(HomeController)
        Other = type("HomeController", (Controller,), {})
        with pytest.raises(ControllerRegistrationFault):
            registry.register(Other)

    def test_usable_as_decorator(self):
        registry = ControllerRegistry()

        @registry.register
        class ReportController(Controller):
            def index(self, ctx):
                return "r"

        assert registry.get("ReportController") is ReportController

    def test_resolve(self):
        registry = ControllerRegistry()
        registry.register(UsersController)
        target = registry.resolve("/users/show/7")
        assert target.controller is UsersController
        assert target.action == "show"
        assert target.params == ("7",)
        assert target.name == "UsersController.show"

    @pytest.mark.parametrize("path", [
        "/nothing/index",        # unregistered controller
        "/users/missing",        # unknown action
        "/users/_private",       # private method
        "/users/show",           # too few params
        "/users/show/1/2",       # too many params
    ])
    def test_resolve_misses(self, path):
        registry = ControllerRegistry()
        registry.register(UsersController)
        assert registry.resolve(path) is None

    def test_optional_params_bind(self):
        registry = ControllerRegistry()
        registry.register(UsersController)
        assert registry.resolve("/users/pair/x").params == ("x",)
        assert registry.resolve("/users/pair/x/y").params == ("x", "y")

    def test_routes_listing(self):
        registry = ControllerRegistry()
        registry.register(HomeController)
        assert registry.routes() == ["/home/about", "/home/index"]


# ============================================================================
# Response coercion
# ============================================================================

class TestCoerceResponse:

    def test_passthrough(self):
        response = Response.text("x")
        assert coerce_response(response, "h") is response

    def test_str_is_html(self):
        response = coerce_response("<p>hi</p>", "h")
        assert response.headers["content-type"].startswith("text/html")

    def test_dict_and_list_are_json(self):
        assert json.loads(coerce_response({"a": 1}, "h").body) == {"a": 1}
        assert json.loads(coerce_response([1, 2], "h").body) == [1, 2]

    def test_none_is_204(self):
        assert coerce_response(None, "h").status == 204

    def test_unsupported(self):
        with pytest.raises(HandlerFault):
            coerce_response(object(), "h")


# ============================================================================
# Dispatcher
# ============================================================================

def _dispatcher(auto_routing=True):
    routes = RouteTable()
    controllers = ControllerRegistry()
    controllers.register_many([HomeController, UsersController])
    return Dispatcher(routes, controllers, auto_routing=auto_routing), routes


class TestDispatcher:

    @pytest.mark.asyncio
    async def test_explicit_route_with_params(self):
        dispatcher, routes = _dispatcher()
        routes.get("/posts/{year}/{slug}", lambda ctx, year, slug: {"year": year, "slug": slug})
        response = await dispatcher.dispatch(make_ctx("GET", "/posts/2024/hi"))
        assert json.loads(response.body) == {"year": "2024", "slug": "hi"}

    @pytest.mark.asyncio
    async def test_controller_pair_handler(self):
        dispatcher, routes = _dispatcher()
        routes.get("/u/{id}", (UsersController, "show"))
        response = await dispatcher.dispatch(make_ctx("GET", "/u/5"))
        assert json.loads(response.body) == {"id": "5"}

    @pytest.mark.asyncio
    async def test_explicit_takes_precedence_over_auto(self):
        dispatcher, routes = _dispatcher()
        routes.get("/users/{id}", lambda ctx, id: f"explicit {id}")
        response = await dispatcher.dispatch(make_ctx("GET", "/users/id"))
        assert response.body == b"explicit id"

    @pytest.mark.asyncio
    async def test_auto_route_fallback(self):
        dispatcher, _ = _dispatcher()
        response = await dispatcher.dispatch(make_ctx("GET", "/home/about"))
        assert response.body == b"about"

        response = await dispatcher.dispatch(make_ctx("GET", "/"))
        assert response.body == b"home"

    @pytest.mark.asyncio
    async def test_auto_route_any_method(self):
        dispatcher, _ = _dispatcher()
        response = await dispatcher.dispatch(make_ctx("DELETE", "/users/show/3"))
        assert json.loads(response.body) == {"id": "3"}

    @pytest.mark.asyncio
    async def test_auto_routing_disabled_gives_404(self):
        dispatcher, routes = _dispatcher(auto_routing=False)
        routes.get("/", lambda ctx: "A")
        routes.get("/about", lambda ctx: "B")

        assert (await dispatcher.dispatch(make_ctx("GET", "/about"))).body == b"B"
        missing = await dispatcher.dispatch(make_ctx("GET", "/missing"))
        assert missing.status == 404
        assert (await dispatcher.dispatch(make_ctx("GET", "/home/about"))).status == 404

    @pytest.mark.asyncio
    async def test_unbindable_auto_route_is_404(self):
        dispatcher, _ = _dispatcher()
        response = await dispatcher.dispatch(make_ctx("GET", "/users/show"))
        assert response.status == 404

    @pytest.mark.asyncio
    async def test_gate_halt_skips_handler(self):
        dispatcher, routes = _dispatcher()
        calls = Calls()

        class Deny(Gate):
            def evaluate(self, ctx):
                return Halt(Response.redirect("/login"))

        def handler(ctx):
            calls.handler_ran = True
            return "secret"

        routes.get("/secret", handler, [Deny])
        response = await dispatcher.dispatch(make_ctx("GET", "/secret"))
        assert response.status == 302
        assert calls.handler_ran is False

    @pytest.mark.asyncio
    async def test_gate_continue_runs_handler(self):
        dispatcher, routes = _dispatcher()

        class Allow(Gate):
            def evaluate(self, ctx):
                return CONTINUE

        routes.get("/open", lambda ctx: "ok", [Allow])
        assert (await dispatcher.dispatch(make_ctx("GET", "/open"))).body == b"ok"

    @pytest.mark.asyncio
    async def test_auto_route_never_runs_gates(self):
        dispatcher, routes = _dispatcher()
        evaluated = []

        class Deny(Gate):
            def evaluate(self, ctx):
                evaluated.append(ctx.path)
                return Halt(Response.redirect("/login"))

        routes.get("/members/{id}", (UsersController, "show"), [Deny])

        gated = await dispatcher.dispatch(make_ctx("GET", "/members/3"))
        assert gated.status == 302
        assert evaluated == ["/members/3"]

        response = await dispatcher.dispatch(make_ctx("GET", "/users/show/3"))
        assert json.loads(response.body) == {"id": "3"}
        assert evaluated == ["/members/3"]

    @pytest.mark.asyncio
    async def test_handler_exception_propagates(self):
        dispatcher, routes = _dispatcher()

        def broken(ctx):
            raise RuntimeError("db down")

        routes.get("/broken", broken)
        with pytest.raises(RuntimeError):
            await dispatcher.dispatch(make_ctx("GET", "/broken"))

    @pytest.mark.asyncio
    async def test_not_found_json_without_templates(self):
        dispatcher, _ = _dispatcher()
        response = await dispatcher.dispatch(make_ctx("GET", "/nope/nope"))
        assert response.status == 404
        assert json.loads(response.body) == {"error": "Not found"}

    @pytest.mark.asyncio
    async def test_match_recorded_on_ctx(self):
        dispatcher, routes = _dispatcher()
        routes.get("/x", lambda ctx: "x")
        ctx = make_ctx("GET", "/x")
        await dispatcher.dispatch(ctx)
        assert ctx.state["route"].template == "/x"
