"""
Errors raised by inventorylock and the CLI glue that reports them.

Store errors carry a stable ``error_code``. A VersionConflictError means the
caller must re-read before trying again; a StoreError means the same request
may succeed later.
"""
import functools
import logging
import os
import sys
import traceback
import uuid
from typing import Any, Callable, Dict, Optional
from uuid import UUID

import typer
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class InventoryLockError(Exception):
    """Base class for all inventorylock exceptions."""
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code or "INVLCK-GEN-ERR"
        super().__init__(message)


class ConfigError(InventoryLockError):
    """Error related to configuration issues."""
    def __init__(self, message: str):
        super().__init__(message, "INVLCK-CFG-ERR")


class StoreError(InventoryLockError):
    """
    Infrastructure failure inside a store (connectivity, locking timeouts,
    duplicate inserts).

    Callers should retry these with backoff using the same data, unlike
    VersionConflictError which requires a fresh read.
    """
    def __init__(self, message: str):
        super().__init__(message, "INVLCK-STR-ERR")


class NotFoundError(InventoryLockError):
    """No current record exists for the requested id."""
    def __init__(self, product_id: Any):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found", "INVLCK-NF-ERR")


class VersionConflictError(InventoryLockError):
    """A save presented a version that no longer matches the stored one."""
    def __init__(self, product_id: UUID, expected_version: int, actual_version: Optional[int] = None):
        self.product_id = product_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        detail = f"expected version {expected_version}"
        if actual_version is not None:
            detail += f", found {actual_version}"
        super().__init__(
            f"Product {product_id} was modified concurrently ({detail})",
            "INVLCK-VER-ERR",
        )


def new_incident_id() -> str:
    """Short id printed to the user and logged with the traceback."""
    return uuid.uuid4().hex[:8]


def describe_invocation(ctx: Optional[typer.Context]) -> Dict[str, Any]:
    """Command path, parameters and INVLOCK_ environment of the failing run."""
    details: Dict[str, Any] = {"argv": sys.argv[1:]}
    if ctx is not None:
        details["command"] = ctx.command_path
        details["params"] = dict(ctx.params or {})
        if isinstance(ctx.obj, BaseModel):
            details["config"] = ctx.obj.model_dump(mode="json")
    details["env"] = {k: v for k, v in os.environ.items() if k.startswith("INVLOCK_")}
    return details


def _fail(message: str) -> None:
    typer.secho("Error: ", fg=typer.colors.RED, bold=True, nl=False, err=True)
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def exception_handler(func: Callable) -> Callable:
    """
    Wrap a command so failures end in a one-line message and exit status 1.

    Known errors print their own message. Anything else is logged with its
    traceback under an incident id the user can quote.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort, typer.BadParameter):
            raise
        except InventoryLockError as e:
            logger.debug(f"{type(e).__name__} [{e.error_code}]: {e}")
            _fail(str(e))
        except Exception as e:
            incident = new_incident_id()
            ctx = kwargs.get("ctx") or next((a for a in args if isinstance(a, typer.Context)), None)
            logger.error(
                f"Unhandled {type(e).__name__} [incident {incident}]: {e}\n"
                f"Invocation: {describe_invocation(ctx)}\n"
                f"{traceback.format_exc()}"
            )
            _fail(f"Unexpected failure (incident {incident}), see the log for details.")

    return wrapper


def handle_keyboard_interrupt(func: Callable) -> Callable:
    """Turn Ctrl-C into exit status 130 instead of a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            typer.echo("\nInterrupted.", err=True)
            raise typer.Exit(code=130)

    return wrapper


def apply_error_handling(app: typer.Typer) -> typer.Typer:
    """
    Wrap the app callback and every registered command.

    Must run after the last ``@app.command()``.
    """
    def wrap(func: Callable) -> Callable:
        return handle_keyboard_interrupt(exception_handler(func))

    if app.registered_callback is not None and app.registered_callback.callback is not None:
        app.registered_callback.callback = wrap(app.registered_callback.callback)
    for command in app.registered_commands:
        if command.callback is not None:
            command.callback = wrap(command.callback)
    return app
