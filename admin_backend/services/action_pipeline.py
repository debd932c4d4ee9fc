"""Admin action pipeline: permission check, confirmation, step-up, execute, audit, notify.

Each ``ActionPipeline`` instance owns its own state machine and loading
flag; concurrent actions use separate instances.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Type

from admin_backend.core.config import settings
from admin_backend.core.exceptions import (
    AdminConsoleError, ConfirmationCancelled, ExecutionFailed, PermissionDenied,
    PipelineBusy, ReauthFailed, ValidationError,
)
from admin_backend.core.rbac import (
    RiskTier, has_permission, is_critical_action, normalize_role, requires_reason,
    risk_level_of,
)
from admin_backend.schemas.schemas import AuditEntryIn, ReauthResult
from admin_backend.services.audit_service import AuditTrail
from admin_backend.services.identity_service import IdentityVerifier, REAUTH_REJECTED

logger = logging.getLogger("admin_console.pipeline")

DENIED_MESSAGE = "You do not have permission to perform this action."
GENERIC_FAILURE = "Action failed."
INTERRUPTED = "Action interrupted."
REASON_REQUIRED = "Please provide a reason."
CREDENTIAL_REQUIRED = "Password is required for this action."


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    CHECKING_PERMISSION = "checking_permission"
    DENIED = "denied"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"
    AWAITING_REAUTH = "awaiting_reauth"
    REAUTH_FAILED = "reauth_failed"
    REAUTH_OK = "reauth_ok"
    EXECUTING = "executing"
    EXECUTION_FAILED = "execution_failed"
    EXECUTION_OK = "execution_ok"
    LOGGING = "logging"
    SUCCESS = "success"
    ERROR = "error"


# operation(reason, credential) -> result
Operation = Callable[[Optional[str], Optional[str]], Awaitable[Any]]


@dataclass(frozen=True)
class ActionRequest:
    permission: str
    role: Any
    operation: Operation
    audit_action: Optional[str] = None
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    require_reason: bool = False
    admin_id: Optional[str] = None
    ip_address: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    confirm_label: Optional[str] = None


@dataclass(frozen=True)
class Confirmation:
    reason: Optional[str] = None
    credential: Optional[str] = None


@dataclass(frozen=True)
class ConfirmationPrompt:
    title: str
    message: str
    confirm_label: str
    risk: str
    critical: bool
    require_reason: bool
    require_credential: bool
    warning: Optional[str] = None


@dataclass(frozen=True)
class ActionOutcome:
    status: str  # "success" | "error" | "cancelled"
    result: Any = None
    message: Optional[str] = None
    error: Optional[Type[AdminConsoleError]] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error(self.message)


@dataclass(frozen=True)
class PipelineView:
    state: PipelineState
    prompt: Optional[ConfirmationPrompt]
    loading: bool
    error: Optional[str]


Confirmer = Callable[[ConfirmationPrompt], Awaitable[Optional[Confirmation]]]

_WARNINGS = {
    RiskTier.LOW: None,
    RiskTier.MEDIUM: "caution",
    RiskTier.HIGH: "danger",
    RiskTier.CRITICAL: "danger",
}


def build_prompt(request: ActionRequest) -> ConfirmationPrompt:
    """Tiered disclosure for the confirmation step."""
    risk = risk_level_of(request.permission)
    critical = is_critical_action(request.permission)
    return ConfirmationPrompt(
        title=request.title or "Confirm Action",
        message=request.message or "Are you sure you want to proceed?",
        confirm_label=request.confirm_label or "Confirm",
        risk=risk.value,
        critical=critical,
        require_reason=request.require_reason or requires_reason(request.permission),
        require_credential=critical,
        warning=_WARNINGS[risk],
    )


class ActionPipeline:
    """Drives one admin action at a time through the confirmation flow."""

    def __init__(
        self,
        audit_trail: AuditTrail,
        identity: IdentityVerifier,
        on_success: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        audit_failed_executions: Optional[bool] = None,
    ):
        self.audit_trail = audit_trail
        self.identity = identity
        self.on_success = on_success
        self.on_error = on_error
        if audit_failed_executions is None:
            audit_failed_executions = settings.AUDIT_FAILED_EXECUTIONS
        self.audit_failed_executions = audit_failed_executions

        self.state = PipelineState.IDLE
        self.history: List[PipelineState] = []
        self.prompt: Optional[ConfirmationPrompt] = None
        self.loading = False
        self.error: Optional[str] = None
        self._request: Optional[ActionRequest] = None
        self._audit_tasks: set = set()

    def view(self) -> PipelineView:
        return PipelineView(self.state, self.prompt, self.loading, self.error)

    # -- steps --

    def begin(self, request: ActionRequest) -> ConfirmationPrompt:
        """Check permission and open the confirmation step.

        Raises:
            PermissionDenied: the role lacks the permission; nothing is shown or logged.
            PipelineBusy: an earlier action on this instance has not finished.
        """
        if self.loading or self.state is not PipelineState.IDLE:
            raise PipelineBusy("Another action is already in progress.")

        self.history = []
        self.error = None
        self._request = request
        self._transition(PipelineState.CHECKING_PERMISSION)

        if not has_permission(request.role, request.permission):
            logger.info(
                "Denied %s for role %s (admin %s)",
                request.permission, normalize_role(request.role).value, request.admin_id,
            )
            self._transition(PipelineState.DENIED)
            self._fail(DENIED_MESSAGE, PermissionDenied)
            raise PermissionDenied(DENIED_MESSAGE)

        self.prompt = build_prompt(request)
        self._transition(PipelineState.AWAITING_CONFIRMATION)
        return self.prompt

    def cancel(self) -> ActionOutcome:
        if self.state is not PipelineState.AWAITING_CONFIRMATION:
            raise PipelineBusy("Only an action awaiting confirmation can be cancelled.")
        self._transition(PipelineState.CANCELLED)
        self.error = None
        self._reset()
        return ActionOutcome(
            "cancelled", message="Action cancelled.", error=ConfirmationCancelled,
        )

    async def confirm(
        self, reason: Optional[str] = None, credential: Optional[str] = None,
    ) -> ActionOutcome:
        """Run the confirmed action.

        Incomplete input raises ``ValidationError`` and leaves the
        pipeline awaiting confirmation so the user can correct it.
        """
        if self.loading:
            raise PipelineBusy("This action is already executing.")
        if self.state is not PipelineState.AWAITING_CONFIRMATION:
            raise ValidationError("No action is awaiting confirmation.")

        request, prompt = self._request, self.prompt
        reason = (reason or "").strip()
        credential = credential or ""

        if prompt.require_reason and not reason:
            self.error = REASON_REQUIRED
            raise ValidationError(REASON_REQUIRED)
        if prompt.require_credential and not credential.strip():
            self.error = CREDENTIAL_REQUIRED
            raise ValidationError(CREDENTIAL_REQUIRED)

        self.error = None
        self.loading = True
        self._transition(PipelineState.CONFIRMED)
        try:
            if prompt.require_credential:
                self._transition(PipelineState.AWAITING_REAUTH)
                verdict = await self._reauthenticate(credential)
                if not verdict.success:
                    self._transition(PipelineState.REAUTH_FAILED)
                    return self._fail(verdict.error or REAUTH_REJECTED, ReauthFailed)
                self._transition(PipelineState.REAUTH_OK)

            self._transition(PipelineState.EXECUTING)
            try:
                result = await request.operation(reason or None, credential or None)
            except Exception as e:
                message = str(e) or GENERIC_FAILURE
                logger.warning("Action %s failed: %s", request.permission, message)
                self._transition(PipelineState.EXECUTION_FAILED)
                if self.audit_failed_executions:
                    self._spawn_audit(request, reason, failure=message)
                return self._fail(message, ExecutionFailed)

            self._transition(PipelineState.EXECUTION_OK)
            self._transition(PipelineState.LOGGING)
            self._spawn_audit(request, reason)
            return self._succeed(result)
        finally:
            self.loading = False
            if self.state is not PipelineState.IDLE:
                # Interrupted mid-flight (e.g. task cancellation); nothing was reported.
                self.error = INTERRUPTED
                self._transition(PipelineState.ERROR)
                self._reset()

    async def execute(self, request: ActionRequest, confirmer: Confirmer) -> ActionOutcome:
        """Full flow; ``confirmer`` returns the user's input or ``None`` to cancel."""
        try:
            prompt = self.begin(request)
        except PermissionDenied as e:
            return ActionOutcome("error", message=e.message, error=PermissionDenied)

        try:
            confirmation = await confirmer(prompt)
        except BaseException:
            self.cancel()
            raise
        if confirmation is None:
            return self.cancel()

        try:
            return await self.confirm(confirmation.reason, confirmation.credential)
        except ValidationError as e:
            return self._fail(e.message, ValidationError)

    async def drain(self) -> None:
        """Wait for in-flight audit writes."""
        if self._audit_tasks:
            await asyncio.gather(*list(self._audit_tasks))

    # -- internals --

    def _transition(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("pipeline -> %s", state.value)

    def _reset(self) -> None:
        self._request = None
        self.prompt = None
        self.loading = False
        self.state = PipelineState.IDLE

    def _succeed(self, result: Any) -> ActionOutcome:
        self._transition(PipelineState.SUCCESS)
        self._reset()
        if self.on_success:
            self.on_success(result)
        return ActionOutcome("success", result=result)

    def _fail(self, message: str, error: Type[AdminConsoleError]) -> ActionOutcome:
        self.error = message
        self._transition(PipelineState.ERROR)
        self._reset()
        if self.on_error:
            self.on_error(message)
        return ActionOutcome("error", message=message, error=error)

    async def _reauthenticate(self, credential: str) -> ReauthResult:
        try:
            verdict = await self.identity.reauthenticate(credential)
            if isinstance(verdict, dict):
                verdict = ReauthResult(**verdict)
            if not isinstance(verdict, ReauthResult):
                raise TypeError(f"unexpected re-authentication result {verdict!r}")
        except Exception as e:
            logger.error("Identity check failed: %s", e)
            return ReauthResult(success=False, error=REAUTH_REJECTED)
        return verdict

    def _spawn_audit(
        self, request: ActionRequest, reason: str, failure: Optional[str] = None,
    ) -> None:
        if not request.audit_action:
            return
        action = request.audit_action
        details = reason or f"Action: {action}"
        if failure is not None:
            action = f"{action}.failed"
            details = f"{details} | error: {failure}"
        entry = AuditEntryIn(
            action=action,
            target_id=request.target_id,
            target_type=request.target_type,
            details=details,
            admin_id=request.admin_id,
            admin_role=normalize_role(request.role).value,
            ip_address=request.ip_address,
        )
        task = asyncio.create_task(self._write_audit(entry))
        self._audit_tasks.add(task)
        task.add_done_callback(self._audit_tasks.discard)

    async def _write_audit(self, entry: AuditEntryIn) -> None:
        try:
            await self.audit_trail.append(entry)
        except Exception:
            logger.exception("Audit write for %s discarded", entry.action)
