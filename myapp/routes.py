"""
Explicit routes of the reference application.

Routes are matched in declaration order, so ``/users/create`` is declared
before ``/users/{id}``.
"""

from strix import RequestCtx, RouteTable, SessionAuthGate

from .controllers import ApiController, AuthController, HomeController, UserController


async def dashboard(ctx: RequestCtx):
    user = await ctx.table("users").find(ctx.session.get("user_id"))
    return await ctx.render("dashboard", {"title": "Dashboard", "user": user})


async def profile(ctx: RequestCtx):
    user = await ctx.table("users").find(ctx.session.get("user_id"))
    return await ctx.render("profile", {"title": "Profile", "user": user})


def _protected(routes: RouteTable) -> None:
    routes.get("/dashboard", dashboard, name="dashboard")
    routes.get("/profile", profile, name="profile")


def register_routes(routes: RouteTable) -> RouteTable:
    routes.get("/", (HomeController, "index"), name="home")
    routes.get("/about", (HomeController, "about"), name="about")

    routes.get("/users", (UserController, "index"), name="users.index")
    routes.get("/users/create", (UserController, "create"), name="users.create")
    routes.get("/users/{id}", (UserController, "show"), name="users.show")
    routes.get("/users/{id}/edit", (UserController, "edit"), name="users.edit")
    routes.post("/users", (UserController, "store"), name="users.store")
    routes.put("/users/{id}", (UserController, "update"), name="users.update")
    routes.delete("/users/{id}", (UserController, "delete"), name="users.delete")

    routes.group([SessionAuthGate], _protected)

    routes.get("/api/users", (ApiController, "users"), name="api.users")

    routes.get("/login", (AuthController, "login_form"), name="login")
    routes.post("/login", (AuthController, "login"))
    routes.post("/logout", (AuthController, "logout"), name="logout")
    return routes


AUTO_ROUTED = (HomeController, UserController, ApiController)
