"""
Scoped acquisition of a temporary stack admin key.

Instance-scoped keys can only be created or deleted through a client
authenticated inside the stack. ``stack_scoped_client`` mints a
short-lived admin key for the stack, yields a client using it, and
deletes the admin key on every exit path. Cleanup failures are logged and
never replace the outcome of the wrapped operation.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from ..config import EngineConfig, get_config
from ..context.request_context import RequestContext
from ..exceptions import BaseError
from ..utils.logger import ContextAwareLogger, get_logger


@contextmanager
def stack_scoped_client(
    client: Any,
    ctx: RequestContext,
    stack_slug: str,
    engine_config: Optional[EngineConfig] = None,
    logger: Optional[ContextAwareLogger] = None,
) -> Iterator[Any]:
    """
    Yield a client scoped to ``stack_slug`` for exactly one privileged call.

    Args:
        client: Organisation-level Grafana Cloud client
        ctx: Request context of the parent operation
        stack_slug: Stack to act on
        engine_config: Scoped key lifetime/prefix; defaults to AppConfig.engine
        logger: Optional logger instance

    Yields:
        The stack-scoped client
    """
    engine = engine_config or get_config().engine
    logger = logger or get_logger()

    scoped_client, temporary_key, cleanup = client.create_stack_scoped_client(
        ctx, stack_slug, engine.scoped_key_prefix, engine.scoped_key_ttl_seconds
    )
    logger.debug(
        "Temporary stack admin key created",
        extra={"stack_slug": stack_slug, "key_id": temporary_key.id, "key_name": temporary_key.name},
    )

    try:
        yield scoped_client
    finally:
        # A cancelled parent still gets a bounded attempt at cleanup
        cleanup_ctx = ctx
        if ctx.cancelled:
            cleanup_ctx = RequestContext(
                timeout_seconds=engine.cleanup_timeout_seconds,
                correlation_id=ctx.correlation_id,
            )
        try:
            cleanup(cleanup_ctx)
        except BaseError as e:
            logger.warning(
                "Failed to delete temporary stack admin key",
                extra={
                    "stack_slug": stack_slug,
                    "key_id": temporary_key.id,
                    "key_name": temporary_key.name,
                    "error_id": e.error_id,
                    "error_message": e.message,
                },
            )
        else:
            logger.debug(
                "Temporary stack admin key deleted",
                extra={"stack_slug": stack_slug, "key_id": temporary_key.id},
            )
