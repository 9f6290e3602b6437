"""
Template Engine - async Jinja2 rendering with an optional shared layout.

Provides:
- Template ids without extension (``users/index`` -> ``users/index.html``)
- Layout wrapping: the page renders first and is embedded in the layout
  as ``content``
- Not-found fallback: ``errors/404`` with status 404, then plain text
- Framework context injection (request, session, config, helpers)
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, Template, TemplateError, TemplateNotFound, select_autoescape
from markupsafe import Markup

from .. import helpers
from ..faults import TemplateFault
from ..response import Response
from ..sessions.core import Session

if TYPE_CHECKING:
    from ..controller import RequestCtx

logger = logging.getLogger("strix.templates")

NOT_FOUND_TEMPLATE = "errors/404"

_DEFAULT = object()


class TemplateEngine:
    """
    Async-capable Jinja2 template engine.

    Args:
        directories: Template search path, first match wins
        layout: Layout template id applied when it exists (None disables)
        extension: File extension appended to template ids
        autoescape: Enable HTML autoescaping
        base_url: Prefix used by the ``url``/``asset`` helpers
        timezone: Zone used by the ``now``/``today`` helpers
        globals: Extra global variables/functions
        filters: Extra filters

    Example:
        engine = TemplateEngine(["myapp/templates"])
        html = await engine.render("users/index", {"users": users})
    """

    def __init__(
        self,
        directories: Union[str, Path, Sequence[Union[str, Path]]],
        *,
        layout: Optional[str] = "layout",
        extension: str = ".html",
        autoescape: bool = True,
        base_url: str = "",
        timezone: Optional[str] = None,
        globals: Optional[Dict[str, Any]] = None,
        filters: Optional[Dict[str, Callable]] = None,
    ):
        if isinstance(directories, (str, Path)):
            directories = [directories]
        self.directories = [str(d) for d in directories]
        self.layout = layout
        self.extension = extension

        self.env = Environment(
            loader=FileSystemLoader(self.directories),
            autoescape=select_autoescape(
                enabled_extensions=["html", "htm", "xml"],
                default_for_string=True,
            ) if autoescape else False,
            enable_async=True,
        )

        self.env.globals.update(
            str_limit=helpers.str_limit,
            str_slug=helpers.str_slug,
            human_date=helpers.human_date,
            escape=helpers.escape,
            e=helpers.e,
            now=functools.partial(helpers.now, tz=timezone),
            today=functools.partial(helpers.today, tz=timezone),
            url=functools.partial(helpers.url, base_url=base_url),
            asset=functools.partial(helpers.asset, base_url=base_url),
        )
        self.env.filters.update(
            str_limit=helpers.str_limit,
            str_slug=helpers.str_slug,
            human_date=helpers.human_date,
        )
        if globals:
            self.env.globals.update(globals)
        if filters:
            self.env.filters.update(filters)

        self._template_cache: Dict[str, Template] = {}

    def template_name(self, template_id: str) -> str:
        """Map a template id to its file name."""
        template_id = template_id.lstrip("/")
        if template_id.endswith(self.extension):
            return template_id
        return template_id + self.extension

    def get_template(self, template_id: str) -> Template:
        """
        Raises:
            TemplateNotFound: no directory holds the template
        """
        name = self.template_name(template_id)
        if name in self._template_cache:
            return self._template_cache[name]
        template = self.env.get_template(name)
        self._template_cache[name] = template
        return template

    def exists(self, template_id: str) -> bool:
        try:
            self.get_template(template_id)
        except TemplateNotFound:
            return False
        return True

    def invalidate_cache(self) -> None:
        self._template_cache.clear()

    def register_global(self, name: str, value: Any) -> None:
        self.env.globals[name] = value

    def register_filter(self, name: str, func: Callable) -> None:
        self.env.filters[name] = func

    # ── Context ──────────────────────────────────────────────────────

    def build_context(
        self,
        data: Optional[Mapping[str, Any]] = None,
        ctx: Optional["RequestCtx"] = None,
    ) -> Dict[str, Any]:
        """
        Framework variables merged under the caller's data.

        The session is only touched when the request already carries one
        or a template asks for a CSRF token, so plain pages never start
        a session.
        """
        context: Dict[str, Any] = {}
        if ctx is not None:
            context["request"] = ctx.request
            context["session"] = ctx.session if ctx.session_started else Session()
            context["config"] = ctx.config
            context["csrf_token"] = lambda: helpers.csrf_token(ctx.session)
            context["csrf_field"] = lambda: helpers.csrf_field(ctx.session)
            context["flash"] = lambda key: ctx.session.flash(key) if ctx.session_started else None
            if ctx.routes is not None:
                context["url_for"] = ctx.routes.url_for
        if data:
            context.update(data)
        return context

    # ── Rendering ────────────────────────────────────────────────────

    async def _render_template(self, template_id: str, context: Dict[str, Any]) -> str:
        template = self.get_template(template_id)
        try:
            return await template.render_async(**context)
        except TemplateError as exc:
            raise TemplateFault(template=template_id, reason=str(exc)) from exc

    async def render(
        self,
        template_id: str,
        data: Optional[Mapping[str, Any]] = None,
        ctx: Optional["RequestCtx"] = None,
        *,
        layout: Any = _DEFAULT,
    ) -> str:
        """
        Render a page, wrapped in the layout when one applies.

        Args:
            template_id: Template id without extension
            data: Template variables
            ctx: Request context (for request/session injection)
            layout: Layout id, None for no layout, omitted for the default

        Raises:
            TemplateNotFound: the page template does not exist
            TemplateFault: the template failed to render
        """
        context = self.build_context(data, ctx)
        body = await self._render_template(template_id, context)

        layout_id = self.layout if layout is _DEFAULT else layout
        if layout_id and layout_id != template_id and self.exists(layout_id):
            context["content"] = Markup(body)
            body = await self._render_template(layout_id, context)
        return body

    async def render_response(
        self,
        template_id: str,
        data: Optional[Mapping[str, Any]] = None,
        *,
        ctx: Optional["RequestCtx"] = None,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
        layout: Any = _DEFAULT,
    ) -> Response:
        """
        Render a template into an HTML response.

        A missing template renders ``errors/404`` with status 404; if that
        is missing as well, the response is a plain ``Page not found``.
        """
        try:
            html = await self.render(template_id, data, ctx, layout=layout)
            return Response.html(html, status=status, headers=headers)
        except TemplateNotFound:
            logger.warning("Template not found: %s", template_id)

        if template_id != NOT_FOUND_TEMPLATE:
            try:
                html = await self.render(NOT_FOUND_TEMPLATE, {"missing": template_id}, ctx, layout=layout)
                return Response.html(html, status=404)
            except TemplateNotFound:
                logger.warning("Template not found: %s", NOT_FOUND_TEMPLATE)

        return Response.text(f"Page not found: {template_id}", status=404)
