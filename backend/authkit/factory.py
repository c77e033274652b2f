"""Application factory wiring Flask extensions, auth components and blueprints."""

from __future__ import annotations

from flask import Flask

from authkit.core.config import BaseConfig, get_config
from authkit.core.logger import configure_logging
from authkit.core.logger import init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config class/object, or an import path string; defaults to
        the class selected by ``APP_ENV``.
    :param instance_relative_config: Load ``instance/<filename>`` overrides.
    :param instance_config_filename: Name of the optional instance config file.
    :raises ValueError: If the authentication settings are invalid.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from authkit.core import proxy

    proxy.init_app(app)

    from authkit.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from authkit.core import cors

    cors.init_app(app)

    from authkit.core import auth

    auth.init_app(app)

    from authkit.core import ratelimit

    ratelimit.init_app(app)

    from authkit.api import init_app as init_api

    init_api(app)

    from authkit.core import errors

    errors.init_app(app)

    from authkit import cli as app_cli

    app_cli.init_app(app)

    return app
