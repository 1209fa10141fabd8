"""
Temporal decorators for exposing repositories across the workflow boundary.

Two halves of the same contract, both derived from a repository Protocol:

1. temporal_activity_registration wraps the Protocol's async methods on a
   concrete repository as Temporal activities named "<prefix>.<method>".
2. temporal_workflow_proxy fills a Protocol subclass with methods that call
   those activities by name from inside a workflow, decoding results into
   the Protocol's declared return types.

Because both sides discover methods the same way, a proxy and its
registered repository always agree on activity names.
"""

import functools
import inspect
import logging
from datetime import timedelta
from typing import (
    Any,
    Callable,
    Dict,
    Optional,
    Tuple,
    Type,
    TypeVar,
    get_type_hints,
)

from temporalio import activity, workflow
from temporalio.common import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_protocol(cls: type) -> bool:
    return bool(getattr(cls, "_is_protocol", False))


def discover_protocol_methods(
    cls_hierarchy: Tuple[type, ...],
) -> Dict[str, Callable[..., Any]]:
    """
    Find the public async methods declared by Protocols in a class MRO.

    Args:
        cls_hierarchy: The class MRO (method resolution order)

    Returns:
        Dict mapping method names to the Protocol's method objects, in MRO
        order. Falls back to every public async method when no Protocol is
        present.
    """
    methods: Dict[str, Callable[..., Any]] = {}

    for base_class in cls_hierarchy:
        if base_class is object or not _is_protocol(base_class):
            continue
        for name, member in base_class.__dict__.items():
            if name.startswith("_") or name in methods:
                continue
            if inspect.iscoroutinefunction(member):
                methods[name] = member

    if not methods:
        for base_class in cls_hierarchy:
            if base_class is object:
                continue
            for name, member in base_class.__dict__.items():
                if name.startswith("_") or name in methods:
                    continue
                if inspect.iscoroutinefunction(member):
                    methods[name] = member

    logger.debug(
        "Protocol method discovery",
        extra={
            "classes": [c.__name__ for c in cls_hierarchy],
            "methods": list(methods),
        },
    )
    return methods


def temporal_activity_registration(
    activity_prefix: str,
) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator that registers Protocol methods as Temporal activities.

    Example:
        @temporal_activity_registration("dnn.article_repo.minio")
        class TemporalMinioArticleRepository(MinioArticleRepository):
            pass

        # get -> "dnn.article_repo.minio.get"
        # save -> "dnn.article_repo.minio.save"
        # generate_id -> "dnn.article_repo.minio.generate_id"
    """

    def decorator(cls: Type[T]) -> Type[T]:
        protocol_methods = discover_protocol_methods(cls.__mro__)

        for name in protocol_methods:
            implementation = getattr(cls, name)

            def make_activity(
                impl: Callable[..., Any], method_name: str
            ) -> Callable[..., Any]:
                @functools.wraps(impl)
                async def activity_method(*args: Any, **kwargs: Any) -> Any:
                    return await impl(*args, **kwargs)

                activity_method.__qualname__ = (
                    f"{cls.__name__}.{method_name}"
                )
                return activity_method

            wrapped = make_activity(implementation, name)
            setattr(
                cls,
                name,
                activity.defn(name=f"{activity_prefix}.{name}")(wrapped),
            )

        logger.debug(
            "Registered repository methods as activities",
            extra={
                "class_name": cls.__name__,
                "activity_prefix": activity_prefix,
                "wrapped_methods": list(protocol_methods),
            },
        )
        return cls

    return decorator


def temporal_workflow_proxy(
    activity_base: str,
    timeout_seconds: int = 10,
    retry_policy: Optional[RetryPolicy] = None,
) -> Callable[[Type[T]], Type[T]]:
    """
    Class decorator that implements a repository Protocol with activity
    calls, for use inside workflow code.

    Args:
        activity_base: Activity name prefix used at registration
        timeout_seconds: start_to_close timeout for every activity
        retry_policy: Optional retry policy; Temporal's default otherwise

    Example:
        @temporal_workflow_proxy("dnn.article_repo.minio")
        class WorkflowArticleRepositoryProxy(ArticleRepository):
            pass
    """

    def decorator(cls: Type[T]) -> Type[T]:
        protocol_methods = discover_protocol_methods(cls.__mro__)
        timeout = timedelta(seconds=timeout_seconds)

        for name, protocol_method in protocol_methods.items():
            hints = get_type_hints(protocol_method)
            result_type = hints.get("return")

            def make_proxy_method(
                method_name: str, result_type: Any
            ) -> Callable[..., Any]:
                activity_name = f"{activity_base}.{method_name}"

                async def proxy_method(
                    self: Any, *args: Any, **kwargs: Any
                ) -> Any:
                    if kwargs:
                        raise ValueError(
                            f"kwargs not supported in workflow proxy for "
                            f"{method_name}. Use positional args."
                        )
                    workflow.logger.debug(
                        "Calling repository activity",
                        extra={
                            "activity_name": activity_name,
                            "args_count": len(args),
                        },
                    )
                    return await workflow.execute_activity(
                        activity_name,
                        args=list(args),
                        start_to_close_timeout=timeout,
                        retry_policy=retry_policy,
                        result_type=result_type,
                    )

                proxy_method.__name__ = method_name
                proxy_method.__qualname__ = f"{cls.__name__}.{method_name}"
                return proxy_method

            setattr(cls, name, make_proxy_method(name, result_type))

        logger.debug(
            "Built workflow proxy",
            extra={
                "class_name": cls.__name__,
                "activity_base": activity_base,
                "proxied_methods": list(protocol_methods),
            },
        )
        return cls

    return decorator
