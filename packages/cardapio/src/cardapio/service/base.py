"""
Operation boundary helpers.

Every public mutating operation returns an ActionResult. Store, cache and
validation failures are converted here and never reach the caller as raw
exceptions.
"""

import functools
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from appcore.db import Store
from cardapio.cache.base import CacheBackend, CacheError
from cardapio.contracts.errors import (
    ConflictError,
    ServiceError,
    StoreUnavailableError,
    ValidationError,
)
from cardapio.contracts.result import ActionResult

logger = logging.getLogger(__name__)


def first_validation_message(error: PydanticValidationError) -> str:
    """Human-readable message for the first pydantic error."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"{location}: {first['msg']}"
    return first["msg"]


def service_action(failure_message: str) -> Callable:
    """
    Wrap a service method so it returns an ActionResult.

    - Return value becomes ActionResult.ok(data)
    - ServiceError becomes ActionResult.fail(error)
    - pydantic validation errors become ValidationError
    - IntegrityError (unique constraint raced past a pre-check) becomes ConflictError
    - Any other store or cache error becomes StoreUnavailableError(failure_message)
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., ActionResult]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return ActionResult.ok(func(*args, **kwargs))
            except ServiceError as e:
                logger.info(f"{func.__name__} rejected: {e.code}", extra={"error": e.message})
                return ActionResult.fail(e)
            except PydanticValidationError as e:
                return ActionResult.fail(ValidationError(first_validation_message(e)))
            except IntegrityError as e:
                logger.warning(f"{func.__name__} hit a constraint: {e.orig}")
                return ActionResult.fail(ConflictError())
            except (SQLAlchemyError, CacheError) as e:
                logger.error(f"{failure_message}: {e}", exc_info=True)
                return ActionResult.fail(StoreUnavailableError(failure_message))

        return wrapper

    return decorator


def as_uuid(value: str | UUID, error: ServiceError) -> UUID:
    """Coerce an id to UUID, raising `error` if it is malformed."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise error


@dataclass
class PendingInvalidation:
    """Cache tags and page paths a write has affected."""

    tag_list: list[str] = field(default_factory=list)
    path_list: list[str] = field(default_factory=list)

    def tags(self, *tags: str) -> None:
        self.tag_list.extend(tags)

    def paths(self, *paths: str) -> None:
        self.path_list.extend(paths)

    def apply(self, cache: CacheBackend) -> None:
        if self.tag_list:
            cache.invalidate_tags(*self.tag_list)
        if self.path_list:
            cache.invalidate_path(*self.path_list)


@contextmanager
def write_session(
    store: Store, cache: CacheBackend
) -> Iterator[tuple[Session, PendingInvalidation]]:
    """
    Transactional write scope with cache invalidation.

    Invalidation runs before the commit, so an unreachable cache rolls the
    write back, and again after it, so a read that filled the cache from the
    pre-commit rows is discarded. A failure of the second pass is logged;
    the write is already durable and is reported as such.
    """
    pending = PendingInvalidation()
    with store.session() as db:
        yield db, pending
        db.flush()
        pending.apply(cache)

    try:
        pending.apply(cache)
    except CacheError as e:
        logger.error(
            f"Post-commit cache invalidation failed: {e}",
            extra={"tags": pending.tag_list, "paths": pending.path_list},
        )
