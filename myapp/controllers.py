"""
myapp controllers (request handlers).

Home, User and Api controllers are registered for auto-routing, so
``/user/show/3`` reaches ``UserController.show`` as well as the explicit
``/users/{id}`` route. AuthController is only reachable through its
explicit routes.
"""

from datetime import datetime, timezone

from strix import Controller, RequestCtx, Response
from strix.hashing import verify_password
from strix.helpers import is_email, str_limit


def _text(value):
    # JSON bodies can carry numbers, lists or objects; only strings count.
    return value.strip() if isinstance(value, str) else ""


async def _user_input(request):
    return {
        "name": _text(await request.input("name")),
        "email": _text(await request.input("email")),
    }


def _validate(data):
    errors = []
    if not data["name"]:
        errors.append("Name is required.")
    if not is_email(data["email"]):
        errors.append("A valid email address is required.")
    return errors


class HomeController(Controller):
    """Static pages."""

    async def index(self, ctx: RequestCtx):
        return await self.render("home", {"title": "Welcome to Strix"})

    async def about(self, ctx: RequestCtx):
        return await self.render("about", {"title": "About"})


class UserController(Controller):
    """CRUD over the ``users`` table."""

    async def index(self, ctx: RequestCtx):
        users = await self.table("users").order_by("created_at", "DESC").order_by("id", "DESC").get()
        return await self.render("users/index", {"title": "All users", "users": users})

    async def show(self, ctx: RequestCtx, id: str):
        user = await self.table("users").find(id)
        if user is None:
            return await self.render("errors/404", {"missing": f"user {str_limit(id, 20)}"}, status=404)
        return await self.render("users/show", {"title": user["name"], "user": user})

    async def create(self, ctx: RequestCtx):
        return await self.render("users/create", {"title": "New user", "old": {}})

    async def store(self, ctx: RequestCtx):
        data = await _user_input(self.request)
        errors = _validate(data)
        if errors:
            return await self.render(
                "users/create",
                {"title": "New user", "errors": errors, "old": data},
                status=422,
            )

        data["created_at"] = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        user_id = await self.table("users").insert(data)
        self.session.flash("success", f"User {data['name']} created.")
        return self.redirect(ctx.url_for("users.show", id=user_id))

    async def edit(self, ctx: RequestCtx, id: str):
        user = await self.table("users").find(id)
        if user is None:
            return await self.render("errors/404", {"missing": f"user {str_limit(id, 20)}"}, status=404)
        return await self.render("users/edit", {"title": f"Edit {user['name']}", "user": user})

    async def update(self, ctx: RequestCtx, id: str):
        data = await _user_input(self.request)
        errors = _validate(data)
        if errors:
            if self.request.wants_json():
                return self.json({"success": False, "errors": errors}, status=422)
            user = dict(data, id=id)
            return await self.render(
                "users/edit",
                {"title": "Edit user", "user": user, "errors": errors},
                status=422,
            )

        updated = await self.table("users").where("id", id).update(data)
        if self.request.wants_json():
            return self.json({"success": updated > 0})
        self.session.flash("success", "User updated.")
        return self.redirect(ctx.url_for("users.show", id=id))

    async def delete(self, ctx: RequestCtx, id: str):
        deleted = await self.table("users").where("id", id).delete()
        if self.request.wants_json():
            return self.json({"success": deleted > 0})
        self.session.flash("success", "User deleted.")
        return self.redirect(ctx.url_for("users.index"))


class ApiController(Controller):
    """JSON endpoints."""

    async def users(self, ctx: RequestCtx):
        return await self.table("users").select("id", "name", "email", "created_at").get()

    async def user(self, ctx: RequestCtx, id: str):
        user = await self.table("users").select("id", "name", "email", "created_at").find(id)
        if user is None:
            return self.json({"error": "User not found"}, status=404)
        return user


class AuthController(Controller):
    """Session login and logout."""

    async def login_form(self, ctx: RequestCtx):
        if self.session.has("user_id"):
            return self.redirect("/dashboard")
        return await self.render("login", {"title": "Log in"})

    async def login(self, ctx: RequestCtx):
        email = ((await self.request.post("email")) or "").strip()
        password = (await self.request.post("password")) or ""

        user = await self.table("users").where("email", email).first() if email else None
        if user is None or not user.get("password") or not verify_password(user["password"], password):
            return await self.render(
                "login",
                {"title": "Log in", "error": "Invalid email or password.", "email": email},
                status=401,
            )

        self.session.regenerate()
        self.session.set("user_id", user["id"])
        intended = self.session.get("url.intended") or "/dashboard"
        self.session.remove("url.intended")
        return self.redirect(intended)

    async def logout(self, ctx: RequestCtx) -> Response:
        self.session.destroy()
        return self.redirect("/")
