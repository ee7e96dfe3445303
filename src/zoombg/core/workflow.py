"""
Generate → preview → approve/regenerate → save workflow.

The workflow owns a WorkflowSession and moves it through explicit states:

    IDLE → PROMPTING → GENERATING → PREVIEWING → AWAITING_APPROVAL
         → APPROVED → SAVING → DONE
         → REGENERATING → GENERATING (same service, refined prompt)
         → ABORTED

Any error moves the session to FAILED and is re-raised unchanged; user
cancellation moves it to ABORTED. User interaction goes through a WorkflowUI
so the state machine does not depend on the terminal.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from zoombg.core.config import ConfigStore
from zoombg.core.host import ZoomHost
from zoombg.core.image_gen import GenerationRequest, GenerationResult, validate_prompt
from zoombg.core.persist import Persister, SaveResult, default_filename, filename_from_name
from zoombg.core.preview import BrowserPreview
from zoombg.core.providers import ProviderRegistry
from zoombg.core.resolver import ResolvedService, resolve_service
from zoombg.core.retry import RetryPolicy
from zoombg.logging_config import get_logger, log_prompts
from zoombg.utils.exceptions import CancellationError, ValidationError

logger = get_logger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    PROMPTING = "prompting"
    GENERATING = "generating"
    PREVIEWING = "previewing"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    REGENERATING = "regenerating"
    SAVING = "saving"
    DONE = "done"
    FAILED = "failed"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({WorkflowState.DONE, WorkflowState.FAILED, WorkflowState.ABORTED})

_S = WorkflowState
ALLOWED_TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    _S.IDLE: frozenset({_S.PROMPTING}),
    _S.PROMPTING: frozenset({_S.GENERATING}),
    _S.GENERATING: frozenset({_S.PREVIEWING}),
    _S.PREVIEWING: frozenset({_S.AWAITING_APPROVAL}),
    _S.AWAITING_APPROVAL: frozenset({_S.APPROVED, _S.REGENERATING, _S.ABORTED}),
    _S.REGENERATING: frozenset({_S.GENERATING}),
    _S.APPROVED: frozenset({_S.SAVING}),
    _S.SAVING: frozenset({_S.DONE}),
}


class Decision(str, Enum):
    APPROVE = "approve"
    REGENERATE = "regenerate"
    ABORT = "abort"


class WorkflowUI(Protocol):
    """What the workflow needs from whoever is driving it."""

    def ask_prompt(self, message: str, default: str | None = None) -> str:
        ...

    def ask_decision(self, result: GenerationResult) -> Decision:
        ...

    def generating(self, service_name: str) -> AbstractContextManager:
        ...

    def notify_retry(self, attempt: int, delay: float, error: BaseException) -> None:
        ...

    def warn(self, message: str) -> None:
        ...


class NullUI:
    """UI for non-interactive runs: no questions, warnings go to the log."""

    def ask_prompt(self, message: str, default: str | None = None) -> str:
        raise ValidationError("A prompt is required in non-interactive mode.", field="prompt")

    def ask_decision(self, result: GenerationResult) -> Decision:
        return Decision.APPROVE

    def generating(self, service_name: str) -> AbstractContextManager:
        return nullcontext()

    def notify_retry(self, attempt: int, delay: float, error: BaseException) -> None:
        pass

    def warn(self, message: str) -> None:
        logger.warning(message)


@dataclass(frozen=True)
class WorkflowOptions:
    """Everything one invocation asks for."""

    initial_prompt: str | None = None
    service: str | None = None  # None: remembered service, then default
    interactive: bool = True
    dry_run: bool = False
    filename: str | None = None  # user-chosen name; derived from the prompt when None


@dataclass
class WorkflowSession:
    """Mutable state of one run. Discarded when the process exits."""

    current_prompt: str = ""
    selected_service: str | None = None
    last_result: GenerationResult | None = None
    state: WorkflowState = WorkflowState.IDLE
    history: list[str] = field(default_factory=list)

    def transition(self, new_state: WorkflowState) -> None:
        """Move to ``new_state``. FAILED and ABORTED are reachable from any live state."""
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Session already finished in state {self.state.value}")
        allowed = ALLOWED_TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed and new_state not in (_S.FAILED, _S.ABORTED):
            raise RuntimeError(f"Illegal transition {self.state.value} -> {new_state.value}")
        logger.debug("Workflow %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    @property
    def regenerations(self) -> int:
        return max(0, len(self.history) - 1)


@dataclass(frozen=True)
class WorkflowOutcome:
    state: WorkflowState
    session: WorkflowSession
    save: SaveResult | None = None


class GenerationWorkflow:
    """Drives one session from prompt to saved (or simulated) background."""

    def __init__(
        self,
        store: ConfigStore,
        host: ZoomHost,
        retry_policy: RetryPolicy,
        persister: Persister | None = None,
        preview: BrowserPreview | None = None,
        ui: WorkflowUI | None = None,
        registry: ProviderRegistry | None = None,
        cancel_check: Callable[[], bool] | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.host = host
        self.retry_policy = retry_policy
        self.persister = persister or Persister()
        self.preview = preview
        self.ui: WorkflowUI = ui or NullUI()
        self.registry = registry
        self.cancel_check = cancel_check
        self._now = now
        self.session: WorkflowSession | None = None

    def run(self, options: WorkflowOptions) -> WorkflowOutcome:
        """
        Run the workflow to a terminal state.

        Returns:
            WorkflowOutcome in state DONE or ABORTED (user chose abort)

        The session is also kept on ``self.session`` so callers can inspect it
        after an exception.

        Raises:
            CancellationError: On interruption (session ends ABORTED)
            Any classified error (session ends FAILED)
        """
        session = self.session = WorkflowSession()
        try:
            return self._run(options, session)
        except (CancellationError, KeyboardInterrupt):
            if session.state not in TERMINAL_STATES:
                session.transition(WorkflowState.ABORTED)
            raise
        except BaseException:
            if session.state not in TERMINAL_STATES:
                session.transition(WorkflowState.FAILED)
            raise

    def _run(self, options: WorkflowOptions, session: WorkflowSession) -> WorkflowOutcome:
        if options.dry_run:
            logger.info("[dry-run] Skipping Zoom checks; nothing will be written")
        else:
            self.host.verify()

        resolved = resolve_service(options.service, self.store, self.registry)
        session.selected_service = resolved.name

        session.transition(WorkflowState.PROMPTING)
        self._collect_prompt(
            options, session, options.initial_prompt, "Describe the Zoom background you want:"
        )

        while True:
            session.transition(WorkflowState.GENERATING)
            result = self._generate(resolved, session, options.dry_run)
            session.last_result = result

            session.transition(WorkflowState.PREVIEWING)
            if options.interactive and self.preview is not None:
                self._show_preview(result)

            session.transition(WorkflowState.AWAITING_APPROVAL)
            decision = self.ui.ask_decision(result) if options.interactive else Decision.APPROVE
            logger.debug("Decision: %s", decision.value)

            if decision is Decision.APPROVE:
                session.transition(WorkflowState.APPROVED)
                break
            if decision is Decision.ABORT:
                session.transition(WorkflowState.ABORTED)
                logger.info("Generation cancelled by user")
                return WorkflowOutcome(state=session.state, session=session)

            session.transition(WorkflowState.REGENERATING)
            self._collect_prompt(
                options, session, None, "Enter new prompt:", default=session.current_prompt
            )

        session.transition(WorkflowState.SAVING)
        save = self._save(options, session, result, resolved)
        session.transition(WorkflowState.DONE)
        return WorkflowOutcome(state=session.state, session=session, save=save)

    def _collect_prompt(
        self,
        options: WorkflowOptions,
        session: WorkflowSession,
        provided: str | None,
        message: str,
        default: str | None = None,
    ) -> None:
        """Set session.current_prompt; loop on empty input when interactive."""
        candidate = provided
        while True:
            if candidate is None:
                if not options.interactive:
                    raise ValidationError(
                        "A prompt is required in non-interactive mode.",
                        field="prompt",
                        remedy="Pass the prompt as an argument, "
                        'e.g. zoombg generate "ocean waves".',
                    )
                candidate = self.ui.ask_prompt(message, default)
            try:
                prompt = validate_prompt(candidate)
            except ValidationError as e:
                if not options.interactive:
                    raise
                self.ui.warn(str(e))
                candidate = None
                continue
            session.current_prompt = prompt
            session.history.append(prompt)
            if log_prompts():
                logger.info("Prompt: %s", prompt)
            return

    def _generate(
        self, resolved: ResolvedService, session: WorkflowSession, dry_run: bool
    ) -> GenerationResult:
        request = GenerationRequest(
            prompt=session.current_prompt,
            service_name=resolved.name,
            timeout_ms=resolved.timeout_ms,
        )
        with self.ui.generating(request.service_name):
            result = self.retry_policy.run(
                resolved.adapter,
                request.prompt,
                resolved.api_key,
                cancel_check=self.cancel_check,
                on_retry=self.ui.notify_retry,
            )
        return result.as_dry_run(dry_run)

    def _show_preview(self, result: GenerationResult) -> None:
        try:
            opened = self.preview.show(result.image_bytes, result.format)
        except Exception as e:
            logger.warning("Preview failed: %s", e)
            opened = None
        if opened is None:
            self.ui.warn("Could not open the preview; you can still approve or regenerate.")

    def _save(
        self,
        options: WorkflowOptions,
        session: WorkflowSession,
        result: GenerationResult,
        resolved: ResolvedService,
    ) -> SaveResult:
        if options.dry_run:
            directory = self.host.expected_backgrounds_directory()
        else:
            directory = self.host.get_backgrounds_directory()

        if options.filename:
            filename = filename_from_name(options.filename, result.extension)
        else:
            filename = default_filename(session.current_prompt, result.extension, self._now())

        save = self.persister.save(result, directory, filename, dry_run=options.dry_run)
        if not options.dry_run:
            self.store.set_last_used_service(resolved.name)
        return save
