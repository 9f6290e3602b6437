"""
Strix templates - Jinja2 rendering with layout wrapping.

Example:
    from strix.templates import TemplateEngine

    engine = TemplateEngine(["templates"], layout="layout")

    class PageController(Controller):
        async def about(self, ctx):
            return await self.render("about", {"title": "About"})
"""

from .engine import NOT_FOUND_TEMPLATE, TemplateEngine

__all__ = ["TemplateEngine", "NOT_FOUND_TEMPLATE"]
