"""Typer subclass that runs async command functions."""

import asyncio
import inspect
from functools import wraps
from typing import Any, Callable

import typer


def run_async(f: Callable) -> Callable:
    """Wrap an async function so click can call it synchronously.

    Each invocation gets its own event loop via asyncio.run().
    """

    @wraps(f)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))

    return sync_wrapper


class ATyper(typer.Typer):
    """Typer subclass with async command and callback support."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("no_args_is_help", False)
        super().__init__(*args, **kwargs)

    def command(self, name: str | None = None, **kwargs: Any) -> Any:  # type: ignore[override]
        """Register a command, wrapping async functions for execution."""
        register = super().command(name, **kwargs)

        def decorator(f: Callable) -> Callable:
            if inspect.iscoroutinefunction(f):
                register(run_async(f))
                return f
            return register(f)

        return decorator

    def callback(self, *args: Any, **kwargs: Any) -> Any:  # type: ignore[override]
        """Register the group callback, wrapping async functions."""
        register = super().callback(*args, **kwargs)

        def decorator(f: Callable) -> Callable:
            if inspect.iscoroutinefunction(f):
                register(run_async(f))
                return f
            return register(f)

        return decorator
