"""
Reference application entry point.

Run:
    strix serve myapp.main:app
    python -m myapp.main
"""

import logging
from pathlib import Path
from typing import Optional

from strix import Application, AppConfig, ConfigLoader, CSRFMiddleware, RouteTable, TemplateEngine

from .routes import AUTO_ROUTED, register_routes

logger = logging.getLogger("myapp")

BASE_DIR = Path(__file__).resolve().parent
SCHEMA = BASE_DIR / "schema.sql"


def create_app(config: Optional[AppConfig] = None, *, csrf: bool = True) -> Application:
    """
    Build the application.

    Args:
        config: Configuration; read from ``.env`` and the environment when omitted
        csrf: Require CSRF tokens on form submissions
    """
    if config is None:
        config = ConfigLoader.load(env_file=".env").to_app_config()

    templates = TemplateEngine(
        [BASE_DIR / "templates"],
        layout=config.layout,
        base_url=config.url,
        timezone=config.timezone,
    )
    app = Application(config, routes=register_routes(RouteTable()), templates=templates)
    app.controllers.register_many(AUTO_ROUTED)

    if csrf:
        app.add_middleware(CSRFMiddleware(exempt=("/api/",)), priority=45, name="csrf")

    @app.on_startup
    async def load_schema():
        if app.db.database.driver != "sqlite":
            return
        statements = await app.db.database.execute_script(SCHEMA.read_text())
        logger.info("Schema ready (%d statements)", statements)

    return app


app = create_app()


if __name__ == "__main__":
    app.run()
