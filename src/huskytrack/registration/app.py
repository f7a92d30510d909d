"""Web application module."""
import argparse
from functools import partial
from ipaddress import IPv4Network, IPv6Network
from pathlib import Path

import uvicorn
from blacksheep import Application, Content, Request, Response
from blacksheep.settings.json import json_settings as json
from blacksheep.server.remotes.forwarding import XForwardedHeadersMiddleware
from huskytrack.registration.config import CommandLineConfig, load_config
from huskytrack.registration.database import DBConfig
from huskytrack.registration.docs import docs
from huskytrack.registration.errors import (
    EventNotFound,
    NotOrganizer,
    NotOwner,
    RegistrationError,
    RegistrationNotFound,
    TemporaryConflict,
)
from huskytrack.registration.http_client import (
    setup_http_client,
    shutdown_http_client,
)
from huskytrack.registration.log import setup_logging
from huskytrack.registration.models.config import Config
from huskytrack.registration.notifications.service import NotificationDispatcher
from huskytrack.registration.serialization import get_converter
from huskytrack.registration.serialization.json import json_dumps, json_loads
from huskytrack.registration.services.allocator import RegistrationAllocator
from huskytrack.registration.views.responses import (
    BodyValidationError,
    ExceptionDetails,
)

app = Application()

docs.bind_app(app)

json.use(
    loads=json_loads,
    dumps=lambda o: json_dumps(o).decode(),
)

ERROR_STATUS = {
    RegistrationNotFound: 404,
    EventNotFound: 404,
    NotOwner: 403,
    NotOrganizer: 403,
    TemporaryConflict: 503,
}
"""HTTP status codes of registration errors. Anything else is a 409."""


def get_error_status(exc: RegistrationError) -> int:
    """Get the HTTP status for a :class:`RegistrationError`."""
    for type_ in type(exc).__mro__:
        status = ERROR_STATUS.get(type_)
        if status is not None:
            return status
    return 409


def _error_response(status: int, details: ExceptionDetails) -> Response:
    return Response(
        status,
        content=Content(
            content_type=b"application/json",
            data=get_converter().dumps(details),
        ),
    )


async def _validation_error_handler(
    app: Application, request: Request, exc: BodyValidationError
):
    return _error_response(422, ExceptionDetails.create(exc.exc))


async def _registration_error_handler(
    app: Application, request: Request, exc: RegistrationError
):
    response = _error_response(
        get_error_status(exc),
        ExceptionDetails(exception=type(exc).__qualname__, detail=exc.message),
    )
    if isinstance(exc, TemporaryConflict):
        response.add_header(b"Retry-After", b"1")
    return response


app.exceptions_handlers[BodyValidationError] = _validation_error_handler
app.exceptions_handlers[RegistrationError] = _registration_error_handler


async def _set_base_path(request, handler):
    """Middleware to set root_path from uvicorn."""
    request.base_path = request.scope.get("root_path", "")
    return await handler(request)


@app.on_middlewares_configuration
def _configure_forwarded_headers(app: Application):
    app.middlewares.insert(0, _set_base_path)
    app.middlewares.insert(
        0,
        XForwardedHeadersMiddleware(
            # Allow X-Forwarded headers from private networks
            known_networks=[
                IPv4Network("127.0.0.0/8"),
                IPv4Network("10.0.0.0/8"),
                IPv4Network("172.16.0.0/12"),
                IPv4Network("192.168.0.0/16"),
                IPv6Network("fc00::/7"),
                IPv6Network("::1/128"),
            ]
        ),
    )


async def _setup_app(config: Config, app: Application):
    db_config = DBConfig.create(config.database.url)
    app.services.add_instance(db_config)

    # TODO: replace with alembic migrations once the schema settles
    await db_config.create_tables()

    http_client = setup_http_client()
    app.services.add_instance(http_client)

    dispatcher = NotificationDispatcher(config.notifications)
    app.services.add_instance(dispatcher)

    allocator = RegistrationAllocator(
        db_config.session_factory, dispatcher, config.allocator
    )
    app.services.add_instance(allocator)


@app.on_stop
async def _shutdown_app(app: Application):
    await app.service_provider[NotificationDispatcher].close()
    await shutdown_http_client()
    await app.service_provider[DBConfig].close()


def app_factory():
    """Set up and return the ASGI app."""
    # There's no way to pass settings from the main uvicorn process to the worker
    # processes, but we can just parse the command line arguments again
    cmd_config = parse_args()

    config = load_config(cmd_config.config)
    app.services.add_instance(config)

    # pass the config to the on_start hook
    app.on_start(partial(_setup_app, config))

    # set up logging
    setup_logging(debug=cmd_config.debug)

    app.services.add_instance(cmd_config)

    return app


def run():
    """Entry point for the console script."""
    args = parse_args()

    if args.reload:
        # for reload to work we have to run in single-worker mode
        uvicorn.run(
            "huskytrack.registration.app:app_factory",
            factory=True,
            host=args.bind,
            port=args.port,
            root_path=args.root_path,
            reload=True,
            workers=1,
        )
    else:
        uvicorn.run(
            "huskytrack.registration.app:app_factory",
            factory=True,
            host=args.bind,
            port=args.port,
            root_path=args.root_path,
        )


def parse_args() -> CommandLineConfig:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="HuskyTrack registration allocator HTTP API server",
    )

    parser.add_argument(
        "-p", "--port", type=int, help="the port to listen on", default=8000
    )
    parser.add_argument(
        "-b", "--bind", type=str, help="the address to bind to", default="127.0.0.1"
    )
    parser.add_argument(
        "--root-path",
        type=str,
        help="the URL root path",
        default="",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="enable debug settings and logging",
        default=False,
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="watch file changes and reload the server for development",
        default=False,
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="path to the config file",
        default=Path("config.yml"),
    )

    args = parser.parse_args()
    return CommandLineConfig(
        port=args.port,
        bind=args.bind,
        root_path=args.root_path,
        debug=args.debug,
        reload=args.reload,
        config=args.config,
    )


# Import views

import huskytrack.registration.views.event  # noqa
import huskytrack.registration.views.registration  # noqa
