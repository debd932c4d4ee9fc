"""Registry of named admin operations the HTTP surface can run through the pipeline.

The business mutations themselves live outside this package; host code
registers them here::

    @action_registry.operation("user.suspend", permission="users:suspend",
                               target_type="user", require_reason=True)
    async def suspend_user(ctx):
        return await users_api.suspend(ctx.target_id, ctx.reason)

Handlers that also drive a locally displayed record state can wrap the
remote call in ``OptimisticStore.apply`` so only that record reverts on
failure::

    user_states = OptimisticStore()

    async def suspend_user(ctx):
        return await user_states.apply(
            ctx.target_id, "suspended", lambda: users_api.suspend(ctx.target_id, ctx.reason),
        )
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from admin_backend.core.exceptions import ResourceNotFoundError
from admin_backend.core.security import Principal
from admin_backend.services.action_pipeline import ActionRequest
from admin_backend.services.optimistic_store import OptimisticStore  # noqa: F401  (re-exported for handlers)


@dataclass(frozen=True)
class ActionContext:
    """What a registered handler receives when it runs."""

    target_id: Optional[str]
    reason: Optional[str]
    credential: Optional[str]
    admin_id: Optional[str]
    role: str
    payload: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[[ActionContext], Awaitable[Any]]


@dataclass(frozen=True)
class RegisteredAction:
    name: str
    permission: str
    handler: Handler
    target_type: Optional[str] = None
    require_reason: bool = False
    title: Optional[str] = None
    message: Optional[str] = None
    confirm_label: Optional[str] = None


class ActionRegistry:
    def __init__(self):
        self._actions: Dict[str, RegisteredAction] = {}

    def register(self, name: str, handler: Handler, *, permission: str, **options) -> RegisteredAction:
        if name in self._actions:
            raise ValueError(f"Action '{name}' is already registered")
        if ":" not in permission:
            raise ValueError(f"Permission '{permission}' must look like 'resource:action'")
        action = RegisteredAction(name=name, permission=permission, handler=handler, **options)
        self._actions[name] = action
        return action

    def operation(self, name: str, *, permission: str, **options):
        """Decorator form of ``register``."""
        def decorator(handler: Handler) -> Handler:
            self.register(name, handler, permission=permission, **options)
            return handler
        return decorator

    def get(self, name: str) -> RegisteredAction:
        try:
            return self._actions[name]
        except KeyError:
            raise ResourceNotFoundError(f"Action '{name}' is not registered")

    def names(self) -> List[str]:
        return sorted(self._actions)

    def build_request(
        self,
        name: str,
        principal: Principal,
        target_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ActionRequest:
        """Bind a registered action to a caller and target."""
        action = self.get(name)
        payload = dict(payload or {})

        async def operation(reason: Optional[str], credential: Optional[str]) -> Any:
            return await action.handler(ActionContext(
                target_id=target_id,
                reason=reason,
                credential=credential,
                admin_id=principal.admin_id,
                role=principal.role.value,
                payload=payload,
            ))

        return ActionRequest(
            permission=action.permission,
            role=principal.role,
            operation=operation,
            audit_action=action.name,
            target_id=target_id,
            target_type=action.target_type,
            require_reason=action.require_reason,
            admin_id=principal.admin_id,
            ip_address=principal.ip_address,
            title=action.title,
            message=action.message,
            confirm_label=action.confirm_label,
        )


action_registry = ActionRegistry()
