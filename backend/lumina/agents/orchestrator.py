"""
Session Orchestrator

Per-session state machine for the redesign flow and the text-to-image
flow. Owns the session's images, context store and project log, and turns
every collaborator failure into a StepOutcome the client can act on.

Redesign:   IDLE → ANALYZING → SELECTING → GENERATING → COMPLETE
                      ↓ fail        ↑ fail        ↓ chat edit
                     IDLE       SELECTING      COMPLETE ⇄ GENERATING
            COMPLETE → SELECTING on reselect (same upload, another style)
Concepts:   IDLE → GENERATING → COMPLETE  (a failure returns to where it started)
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, List, Literal, Optional, Protocol, Union

from pydantic import BaseModel

from lumina.agents.director import Director, preset_instruction
from lumina.config import Settings
from lumina.core.context_store import ContextStore
from lumina.core.exceptions import (
    CollaboratorError,
    InvalidPromptError,
    InvalidTransitionError,
    QuotaExceededError,
    SessionBusyError,
)
from lumina.core.validation import validate_chat_message, validate_image, validate_prompt
from lumina.models.chat import ChatMessage, DisplayOnlyNotice
from lumina.models.instruction import EditInstruction
from lumina.models.room import (
    AnalysisResult,
    AnalysisSuccess,
    ApiFailure,
    RoomAnalysis,
    RoomContext,
)
from lumina.models.styles import get_style, preset_prompt


logger = logging.getLogger(__name__)


ANALYSIS_FAILED = "Failed to analyze image. Please try a smaller image."
REDESIGN_FAILED = "Failed to generate redesign. Try a simpler request."
CHAT_EDIT_FAILED = "Failed to update design from chat."
GENERATION_FAILED = "Failed to generate image. Please try again."
APPLYING_NOTICE = "I'm applying those specific adjustments now..."
CANCELLED = "The request was cancelled."


class SessionState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    SELECTING = "selecting"
    GENERATING = "generating"
    COMPLETE = "complete"


# ============ Collaborator contracts ============

class AnalysisCollaborator(Protocol):
    async def analyze(self, image: bytes, room_context: RoomContext) -> AnalysisResult: ...


class EditCollaborator(Protocol):
    async def edit(self, image: bytes, instruction: Union[EditInstruction, str]) -> bytes: ...


class GenerationCollaborator(Protocol):
    async def generate(self, prompt: str) -> bytes: ...


# ============ Results ============

class StepOutcome(BaseModel):
    """Result of one orchestrated step. Failures are data, not exceptions."""
    state: SessionState
    ok: bool = True
    message: Optional[str] = None
    error_code: Optional[str] = None
    retryable: bool = False
    retry_after: Optional[float] = None
    reply: Optional[str] = None
    image: Optional[bytes] = None

    model_config = {"frozen": True}


class RedesignRecord(BaseModel):
    """One entry of the project log: an image and the instruction that produced it."""
    instruction_text: str
    image: bytes
    source: Literal["preset", "suggested", "custom", "chat"]

    model_config = {"frozen": True}


class StepCancelled(Exception):
    """The in-flight call was superseded by reset() or abort()."""


# ============ Shared step mechanics ============

class _SequentialSession:
    """
    At most one outstanding collaborator call. reset()/abort() bump the
    epoch so late results from a cancelled call are discarded.
    """

    def __init__(self):
        self._state = SessionState.IDLE
        self._stable_state = SessionState.IDLE
        self._epoch = 0
        self._busy = False
        self._inflight: Optional[asyncio.Future] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    def _claim(self, *allowed: SessionState) -> int:
        if self._busy:
            raise SessionBusyError()
        if self._state not in allowed:
            raise InvalidTransitionError(
                f"Cannot do that while the session is '{self._state.value}'"
            )
        self._busy = True
        return self._epoch

    def _release(self, epoch: int) -> None:
        if epoch == self._epoch:
            self._busy = False

    def _begin(self, state: SessionState) -> None:
        self._stable_state = self._state
        self._state = state

    async def _call(self, awaitable: Awaitable):
        """Run one collaborator call as a cancellable task."""
        epoch = self._epoch
        task = asyncio.ensure_future(awaitable)
        self._inflight = task
        try:
            result = await task
        except BaseException:
            if epoch != self._epoch:
                raise StepCancelled() from None
            self._state = self._stable_state
            raise
        finally:
            if self._inflight is task:
                self._inflight = None
        if epoch != self._epoch:
            raise StepCancelled()
        return result

    def _cancel_inflight(self) -> None:
        self._epoch += 1
        self._busy = False
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None

    def abort(self) -> SessionState:
        """Cancel in-flight work and return to the last stable state."""
        if self._busy:
            logger.info("Aborting in-flight step (state=%s)", self._state.value)
            self._cancel_inflight()
            self._state = self._stable_state
        return self._state

    def _failure(
        self,
        error: CollaboratorError,
        message: str,
        reply: Optional[str] = None,
    ) -> StepOutcome:
        if isinstance(error, QuotaExceededError):
            return StepOutcome(
                state=self._state,
                ok=False,
                message=error.message,
                error_code=error.error_code,
                retryable=True,
                retry_after=error.retry_after,
                reply=reply,
            )
        return StepOutcome(
            state=self._state,
            ok=False,
            message=message,
            error_code=error.error_code,
            retryable=True,
            reply=reply,
        )

    def _cancelled(self) -> StepOutcome:
        return StepOutcome(state=self._state, ok=False, message=CANCELLED, error_code="cancelled")


# ============ Redesign flow ============

class DesignSession(_SequentialSession):
    """
    Upload → analysis → redesign → chat refinements for one room.

    Chat edits always start from the original upload and the original
    analysis, never from a previously edited image.
    """

    def __init__(
        self,
        analyzer: AnalysisCollaborator,
        director: Director,
        editor: EditCollaborator,
        settings: Settings,
    ):
        super().__init__()
        self.analyzer = analyzer
        self.director = director
        self.editor = editor
        self.settings = settings
        self._clear()

    def _clear(self) -> None:
        self.store = ContextStore()
        self.room_context: Optional[RoomContext] = None
        self.original_image: Optional[bytes] = None
        self.current_image: Optional[bytes] = None
        self.project_log: List[RedesignRecord] = []

    @property
    def analysis(self) -> Optional[RoomAnalysis]:
        return self.store.analysis

    def reset(self) -> SessionState:
        """Back to IDLE from anywhere. Cancels in-flight work and discards everything."""
        self._cancel_inflight()
        self._clear()
        self._state = SessionState.IDLE
        self._stable_state = SessionState.IDLE
        return self._state

    def reselect(self) -> SessionState:
        """
        COMPLETE → SELECTING to try another style on the same upload.

        The original image, the analysis, the conversation and the project
        log are kept; only the current redesign is dropped.
        """
        epoch = self._claim(SessionState.COMPLETE)
        try:
            self.current_image = None
            self._state = SessionState.SELECTING
            self._stable_state = SessionState.SELECTING
        finally:
            self._release(epoch)
        return self._state

    async def upload(self, image: bytes, room_context: RoomContext) -> StepOutcome:
        epoch = self._claim(SessionState.IDLE)
        try:
            validate_image(image, self.settings.max_image_bytes)
            self._begin(SessionState.ANALYZING)
            logger.info("Analyzing %d byte upload as %s", len(image), room_context.value)
            try:
                result = await self._call(self.analyzer.analyze(image, room_context))
            except StepCancelled:
                return self._cancelled()
        finally:
            self._release(epoch)

        if isinstance(result, AnalysisSuccess):
            self.store.record_analysis(result.analysis)
            self.original_image = image
            self.room_context = room_context
            self._state = SessionState.SELECTING
            logger.info("Analysis complete: %s", result.analysis.room_type)
            return StepOutcome(state=self._state)

        self._state = SessionState.IDLE
        if isinstance(result, ApiFailure):
            logger.warning("Analysis API failure: %s", result.message)
            if result.is_quota_exhausted:
                return StepOutcome(
                    state=self._state,
                    ok=False,
                    message=result.message,
                    error_code="quota_exceeded",
                    retryable=True,
                    retry_after=result.retry_after,
                )
            return StepOutcome(
                state=self._state,
                ok=False,
                message=ANALYSIS_FAILED,
                error_code="collaborator_failure",
                retryable=True,
            )

        logger.warning("Analysis response unusable: %s", result.message)
        return StepOutcome(
            state=self._state,
            ok=False,
            message=ANALYSIS_FAILED,
            error_code="analysis_parse_failure",
            retryable=True,
        )

    def _resolve_redesign_prompt(
        self,
        style_id: Optional[str],
        suggestion_index: Optional[int],
        custom_prompt: Optional[str],
    ):
        chosen = [v is not None for v in (style_id, suggestion_index, custom_prompt)]
        if sum(chosen) != 1:
            raise InvalidPromptError("Choose exactly one of a style, a suggestion or a custom prompt")

        if style_id is not None:
            style = get_style(style_id)
            if style is None:
                raise InvalidPromptError(f"Unknown style '{style_id}'")
            return preset_prompt(style), "preset"

        if suggestion_index is not None:
            suggestions = self.analysis.suggested_prompts if self.analysis else ()
            if not 0 <= suggestion_index < len(suggestions):
                raise InvalidPromptError(f"No suggested prompt at index {suggestion_index}")
            return suggestions[suggestion_index].prompt, "suggested"

        prompt = validate_prompt(
            custom_prompt,
            self.settings.min_prompt_length,
            self.settings.max_prompt_length,
        )
        return prompt, "custom"

    async def redesign(
        self,
        style_id: Optional[str] = None,
        suggestion_index: Optional[int] = None,
        custom_prompt: Optional[str] = None,
    ) -> StepOutcome:
        epoch = self._claim(SessionState.SELECTING)
        try:
            prompt, source = self._resolve_redesign_prompt(style_id, suggestion_index, custom_prompt)
            instruction = preset_instruction(prompt, self.room_context)
            self._begin(SessionState.GENERATING)
            try:
                image = await self._call(self.editor.edit(self.original_image, instruction))
            except StepCancelled:
                return self._cancelled()
            except CollaboratorError as e:
                logger.warning("Redesign failed (%s): %s", source, e.message)
                return self._failure(e, REDESIGN_FAILED)
        finally:
            self._release(epoch)

        self.current_image = image
        self.project_log.append(RedesignRecord(instruction_text=instruction.text, image=image, source=source))
        self._state = SessionState.COMPLETE
        return StepOutcome(state=self._state, image=image)

    async def send_message(self, text: str) -> StepOutcome:
        """
        One chat turn. The Director decides; on an edit the image is
        regenerated from the original upload.
        """
        epoch = self._claim(SessionState.COMPLETE)
        try:
            message = validate_chat_message(text, self.settings.max_chat_message_length)
            self._begin(SessionState.COMPLETE)
            try:
                decision = await self._call(
                    self.director.direct(message, self.store, self.room_context, self.current_image)
                )
            except StepCancelled:
                return self._cancelled()
            except QuotaExceededError as e:
                return self._failure(e, CHAT_EDIT_FAILED)

            self.store.append_message(ChatMessage.user(message))
            self.store.append_message(ChatMessage.assistant(decision.confirmation_text))

            instruction = decision.edit_instruction
            if instruction is None:
                return StepOutcome(state=self._state, reply=decision.confirmation_text)

            notice = DisplayOnlyNotice.of(APPLYING_NOTICE)
            self.store.append_message(notice)
            self._begin(SessionState.GENERATING)
            try:
                image = await self._call(self.editor.edit(self.original_image, instruction))
            except StepCancelled:
                self.store.withdraw_notice(notice)
                return self._cancelled()
            except CollaboratorError as e:
                logger.warning("Chat edit failed: %s", e.message)
                self.store.withdraw_notice(notice)
                return self._failure(e, CHAT_EDIT_FAILED, reply=decision.confirmation_text)
        finally:
            self._release(epoch)

        self.current_image = image
        self.project_log.append(RedesignRecord(instruction_text=instruction.text, image=image, source="chat"))
        self._state = SessionState.COMPLETE
        return StepOutcome(state=self._state, reply=decision.confirmation_text, image=image)


# ============ Text-to-image flow ============

class ConceptSession(_SequentialSession):
    """Generates interior concepts from text alone. Independent of the Director."""

    def __init__(self, generator: GenerationCollaborator, settings: Settings):
        super().__init__()
        self.generator = generator
        self.settings = settings
        self.image: Optional[bytes] = None

    def reset(self) -> SessionState:
        self._cancel_inflight()
        self.image = None
        self._state = SessionState.IDLE
        self._stable_state = SessionState.IDLE
        return self._state

    async def generate(self, prompt: str) -> StepOutcome:
        epoch = self._claim(SessionState.IDLE, SessionState.COMPLETE)
        try:
            prompt = validate_prompt(
                prompt,
                self.settings.min_prompt_length,
                self.settings.max_prompt_length,
            )
            # A failed regeneration keeps the previous concept and its COMPLETE state
            self._begin(SessionState.GENERATING)
            try:
                image = await self._call(self.generator.generate(prompt))
            except StepCancelled:
                return self._cancelled()
            except CollaboratorError as e:
                logger.warning("Concept generation failed: %s", e.message)
                return self._failure(e, GENERATION_FAILED)
        finally:
            self._release(epoch)

        self.image = image
        self._state = SessionState.COMPLETE
        return StepOutcome(state=self._state, image=image)
