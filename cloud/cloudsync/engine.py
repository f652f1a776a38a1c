"""
Cloud engine for cloudsync.

A Cloud instance is created by the host application and collects every
registration made at startup:
- Schemas (the declarations the reconciler converges the store to)
- Triggers keyed by (class name, lifecycle event)
- Resolvers keyed by (type name, field name)
- Named functions
- Startup hooks

setup() waits for registrations to finish loading, runs one
reconciliation pass, then runs the startup hooks.

Invariants:
    - There is no global engine; pass the Cloud instance explicitly
    - Trigger events are validated against TriggerEvent at registration
    - setup() never raises: failures are logged and reported as False
    - Reconciliation is attempted once per setup(); restart to retry
    - Hooks run in registration order and must not depend on each other

How to change safely:
    - Add lifecycle events to TriggerEvent, never accept free-form names
    - Keep the failure boundary in setup() only
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple, Union

from .apply.reconciler import Reconciler
from .config import CloudConfig
from .errors import CloudError, ErrorCode
from .schema.registry import SchemaRegistry
from .schema.types import SchemaDefinition
from .store.base import SchemaStore

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class TriggerEvent(Enum):
    """Lifecycle events a trigger can be attached to."""

    BEFORE_SAVE = "beforeSave"
    AFTER_SAVE = "afterSave"
    BEFORE_DELETE = "beforeDelete"
    AFTER_DELETE = "afterDelete"
    BEFORE_FIND = "beforeFind"
    AFTER_FIND = "afterFind"

    @classmethod
    def from_str(cls, value: str) -> TriggerEvent:
        """Convert an event name to TriggerEvent.

        Raises:
            ValueError: If value is not a known lifecycle event
        """
        for event in cls:
            if event.value == value:
                return event
        valid = [e.value for e in cls]
        raise ValueError(f"Invalid trigger event '{value}'. Valid events: {valid}")


@dataclass
class ResolverInfo:
    """Where in a query a resolver is being invoked.

    Attributes:
        parent_type: Name of the type that owns the resolved field
        field_name: Name of the resolved field
    """

    parent_type: str
    field_name: Optional[str] = None


@dataclass
class FunctionRequest:
    """Request passed to named functions and resolvers.

    Attributes:
        params: Call arguments
        user: Authenticated user, if any
        master: Whether the call was made with the master key
        source: Parent object (resolvers only)
        info: Resolver position (resolvers only)
    """

    params: Dict[str, Any] = field(default_factory=dict)
    user: Any = None
    master: bool = False
    source: Any = None
    info: Optional[ResolverInfo] = None


@dataclass
class TriggerRequest:
    """Request passed to trigger handlers.

    Attributes:
        object: The object being saved, deleted or found
        original: Previous version of the object (save triggers)
        user: Authenticated user, if any
        master: Whether the request used the master key
        context: Free-form context shared between before/after handlers
    """

    object: Any = None
    original: Any = None
    user: Any = None
    master: bool = False
    context: Dict[str, Any] = field(default_factory=dict)


class StartupHook(Protocol):
    """An object with an on_start callback run once after setup."""

    def on_start(self, cloud: Cloud) -> Any: ...


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Cloud:
    """Engine instance holding registrations and running setup.

    Attributes:
        registry: Declared schemas
        store: Remote schema store the reconciler writes to
        config: Configuration passed to the last setup() call

    Example:
        >>> cloud = Cloud(store)
        >>> cloud.register_schema(SchemaDefinition("Post", fields={"title": field("String")}))
        >>> cloud.register_triggers({"Post": {"beforeSave": validate_post}})
        >>> await cloud.setup(CloudConfig(sync=True))
        True
    """

    def __init__(self, store: SchemaStore, registry: Optional[SchemaRegistry] = None) -> None:
        self.store = store
        self.registry = registry if registry is not None else SchemaRegistry()
        self.config: Optional[CloudConfig] = None
        self._triggers: Dict[Tuple[str, TriggerEvent], Handler] = {}
        self._resolvers: Dict[Tuple[str, str], Handler] = {}
        self._functions: Dict[str, Handler] = {}
        self._hooks: List[StartupHook] = []

    # Registration

    def register_triggers(self, triggers: Mapping[str, Mapping[str, Handler]]) -> None:
        """Register trigger handlers.

        Args:
            triggers: Class name to {event name: handler}

        Raises:
            ValueError: If an event name is not a TriggerEvent
        """
        for class_name, handlers in triggers.items():
            for event_name, handler in handlers.items():
                event = TriggerEvent.from_str(event_name)
                if (class_name, event) in self._triggers:
                    logger.warning(f"Replacing {event.value} trigger for {class_name}")
                self._triggers[(class_name, event)] = handler
                logger.debug(f"Registered {event.value} trigger for {class_name}")

    def register_resolvers(self, resolvers: Mapping[str, Mapping[str, Handler]]) -> None:
        """Register field resolvers.

        Each field name becomes a named function. When invoked, the
        request's parent type selects the handler; a parent type with no
        resolver for that field fails with "Invalid resolver".

        Args:
            resolvers: Type name to {field name: handler(source, params, user, info)}
        """
        for type_name, fields in resolvers.items():
            for field_name, handler in fields.items():
                self._resolvers[(type_name, field_name)] = handler
                existing = self._functions.get(field_name)
                if not getattr(existing, "_is_resolver", False):
                    if existing is not None:
                        logger.warning(
                            f"Resolver {type_name}:{field_name} replaces function {field_name}"
                        )
                    self._functions[field_name] = self._resolver_dispatcher(field_name)
                logger.debug(f"Registered resolver {type_name}:{field_name}")

    def register_schema(
        self, schema: Union[SchemaDefinition, Mapping[str, Any]]
    ) -> SchemaDefinition:
        """Register a class declaration.

        Args:
            schema: A SchemaDefinition or its declarative mapping

        Returns:
            The registered SchemaDefinition
        """
        if not isinstance(schema, SchemaDefinition):
            schema = SchemaDefinition.from_dict(schema)
        return self.registry.register(schema)

    def register_function(self, func: Handler, name: Optional[str] = None) -> Handler:
        """Register a named function (defaults to the callable's __name__)."""
        name = name or func.__name__
        if name in self._functions:
            logger.warning(f"Replacing function {name}")
        self._functions[name] = func
        logger.debug(f"Registered function {name}")
        return func

    def register_hooks(self, hook: StartupHook) -> None:
        """Register a startup hook, run once after reconciliation."""
        self._hooks.append(hook)

    # Dispatch

    def get_trigger(self, class_name: str, event: Union[TriggerEvent, str]) -> Optional[Handler]:
        if isinstance(event, str):
            event = TriggerEvent.from_str(event)
        return self._triggers.get((class_name, event))

    @property
    def function_names(self) -> List[str]:
        return sorted(self._functions)

    async def run_function(self, name: str, request: FunctionRequest) -> Any:
        """Invoke a named function or resolver.

        Raises:
            CloudError: If no function with that name is registered
        """
        func = self._functions.get(name)
        if func is None:
            raise CloudError(
                f'Invalid function: "{name}"',
                code=ErrorCode.SCRIPT_FAILED,
                details={"function": name},
            )
        return await _maybe_await(func(request))

    async def run_trigger(
        self,
        class_name: str,
        event: Union[TriggerEvent, str],
        request: TriggerRequest,
    ) -> Any:
        """Invoke the trigger for a class and event, if one is registered."""
        handler = self.get_trigger(class_name, event)
        if handler is None:
            return None
        return await _maybe_await(handler(request))

    def _resolver_dispatcher(self, field_name: str) -> Handler:
        def dispatch(request: FunctionRequest) -> Any:
            parent_type = request.info.parent_type if request.info else None
            handler = self._resolvers.get((parent_type, field_name))
            if handler is None:
                raise CloudError(
                    f"Invalid resolver {parent_type}:{field_name}",
                    code=ErrorCode.OTHER_CAUSE,
                    details={"type": parent_type, "field": field_name},
                )
            return handler(request.source, request.params, request.user, request.info)

        dispatch._is_resolver = True  # type: ignore[attr-defined]
        dispatch.__name__ = field_name
        return dispatch

    # Setup

    async def setup(self, config: CloudConfig) -> bool:
        """Load registrations, reconcile schemas and run startup hooks.

        Any failure is logged and the process keeps running without a
        converged schema; nothing is retried.

        Args:
            config: Run configuration

        Returns:
            True if every step completed, False otherwise
        """
        self.config = config
        try:
            if config.module is not None:
                await _maybe_await(config.module)
            if not self.registry.frozen:
                self.registry.freeze()

            reconciler = Reconciler(
                self.registry,
                self.store,
                reset=config.reset,
                sync=config.sync,
            )
            await reconciler.run_migrations()
            await self._on_start()
            logger.info("cloud has been initialized.")
            return True
        except Exception:
            logger.error("Unable to setup cloud.", exc_info=True)
            return False

    async def _on_start(self) -> None:
        for hook in self._hooks:
            await _maybe_await(hook.on_start(self))
