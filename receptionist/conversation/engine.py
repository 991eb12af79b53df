"""
Turn orchestration engine.

One caller utterance in, one spoken reply and an updated state out:

    utterance
      -> intent/decline detector   (may end the turn: decline or admin script)
      -> quick-answer match        (may end the turn: canned answer + bridge)
      -> prompt assembly           (collected slots, needed slots, hints)
      -> generator call            (bounded by an explicit timeout)
      -> validation and repair     (JSON contract, known slot ids only)
      -> reply assembly            (configured question text, verbatim)
      -> slot merge + mode change

Anything that goes wrong after the fast paths is routed to the fallback
policy, so the caller always hears something. The engine holds no
per-call state of its own; the state passed in is never mutated.
"""

import asyncio
import re
import time
from typing import Optional

from receptionist.catalog.intent_detector import DetectionAction, DetectionResult, detect
from receptionist.catalog.service_catalog import ServiceCatalog
from receptionist.config import AppConfig, settings
from receptionist.conversation.fallback import FallbackPolicy, FallbackReply
from receptionist.conversation.guardrails import ReplyGuardrail, TriggerGuardrail
from receptionist.conversation.output_parser import (
    NO_SLOT,
    AlreadyAsksPredicate,
    GeneratorDecision,
    keyword_already_asks,
    parse_generator_output,
)
from receptionist.conversation.quick_answers import QuickAnswerMatcher, service_area_hint
from receptionist.conversation.slot_manager import MergeOutcome, SlotManager
from receptionist.conversation.state_machine import ModeStateMachine, TurnSignals
from receptionist.errors import ConfigurationError, GeneratorError, GeneratorTimeoutError
from receptionist.llm.base import GeneratorRequest, TextGenerator
from receptionist.logging_context import bind_call, get_call_logger
from receptionist.prompts.prompt_templates import (
    build_messages,
    build_quick_answer_reply,
    build_triage_hint,
    build_turn_prompt,
)
from receptionist.prompts.system_prompts import RESPONSE_SCHEMA
from receptionist.schemas.catalog_schema import ServiceType
from receptionist.schemas.company_schema import CompanyConfig
from receptionist.schemas.conversation_schema import (
    ConversationMode,
    ConversationState,
    HistoryTurn,
    Speaker,
    TurnPath,
    TurnResult,
    TurnTrace,
)

logger = get_call_logger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def _join(*parts: Optional[str]) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def _drop_questions(text: str) -> str:
    """Remove question sentences from an ack so it cannot re-ask a filled slot."""
    kept = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip() and not s.strip().endswith("?")]
    return " ".join(s.strip() for s in kept)


class TurnEngine:
    """
    Stateless turn processor shared by every call in the process.

    Args:
        generator: Injected text generation backend. Its lifetime is owned
            by the caller of this constructor.
        config: Process configuration; the module-level settings when None.
        already_asks: Predicate deciding whether a generated ack already asks
            for a slot, in which case the configured question is not appended.
    """

    def __init__(
        self,
        generator: TextGenerator,
        config: Optional[AppConfig] = None,
        already_asks: Optional[AlreadyAsksPredicate] = None,
    ) -> None:
        self._generator = generator
        self._config = config or settings
        self._already_asks = already_asks or keyword_already_asks
        self._machine = ModeStateMachine()
        self._fallback = FallbackPolicy()

    async def process_turn(
        self,
        state: ConversationState,
        utterance: str,
        company: CompanyConfig,
    ) -> TurnResult:
        """Process one caller utterance and return the reply and new state."""
        bind_call(state.call_id, company.company_id)
        started = time.perf_counter()

        state = state.model_copy(deep=True)
        trace = TurnTrace(
            call_id=state.call_id,
            turn_index=state.turn_count,
            utterance=utterance,
            mode_before=state.mode,
        )
        prior_history = state.recent_history(self._config.engine.history_window)
        state.turn_count += 1
        state.conversation_history.append(HistoryTurn(role=Speaker.CALLER, text=utterance))

        # Work on a copy so a failure part-way through leaves no half-applied update.
        working = state.model_copy(deep=True)
        try:
            reply = await self._run_turn(working, utterance, company, trace, prior_history)
            state = working
        except ConfigurationError as exc:
            fallback = self._fallback.configuration_error(company.fallback, str(exc))
            reply = self._record_fallback(trace, fallback, TurnPath.CONFIG_ERROR)
        except GeneratorError as exc:
            logger.warning("Generator failure: %s", exc)
            fallback = self._fallback.respond(state, company.fallback)
            reply = self._record_fallback(trace, fallback, TurnPath.FALLBACK)
        except Exception as exc:
            logger.exception("Unexpected error while processing turn: %s", exc)
            fallback = self._fallback.respond(state, company.fallback)
            reply = self._record_fallback(trace, fallback, TurnPath.FALLBACK)

        state.conversation_history.append(HistoryTurn(role=Speaker.AGENT, text=reply))
        trace.mode_after = state.mode
        trace.latency_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "Turn %d done via %s in %.0fms (mode %s -> %s)",
            trace.turn_index, trace.path.value if trace.path else "unknown",
            trace.latency_ms, trace.mode_before.value, state.mode.value,
        )
        logger.debug("Turn trace: %s", trace.model_dump_json())
        return TurnResult(reply=reply, state=state, trace=trace)

    @staticmethod
    def _record_fallback(trace: TurnTrace, fallback: FallbackReply, path: TurnPath) -> str:
        trace.path = path
        trace.fallback_tier = fallback.tier.value
        trace.add_event(f"fallback:{fallback.tier.value}")
        return fallback.text

    # ------------------------------------------------------------------ #
    # The canonical turn
    # ------------------------------------------------------------------ #

    async def _run_turn(
        self,
        state: ConversationState,
        utterance: str,
        company: CompanyConfig,
        trace: TurnTrace,
        prior_history: list[HistoryTurn],
    ) -> str:
        triggers = TriggerGuardrail(company.triggers)
        frustrated = not triggers.check_frustration(utterance).passed
        if frustrated:
            trace.add_event("frustration")

        catalog = ServiceCatalog(company.service_catalog)
        detection = detect(utterance, catalog)
        trace.detection = detection.to_dict()

        if detection.is_short_circuit:
            return self._deterministic_reply(state, detection, trace, frustrated)

        slot_manager = SlotManager(company.booking_slots)

        quick = self._quick_answer(state, utterance, company, slot_manager, trace)
        if quick is not None:
            return quick

        if len(slot_manager) == 0:
            raise ConfigurationError(f"Company '{company.company_id}' has no booking slots")

        is_symptom = detection.matched and detection.service_type == ServiceType.SYMPTOM
        problem_described = is_symptom or triggers.describes_problem(utterance)
        need_identified = triggers.wants_booking(utterance)
        if detection.matched and detection.service_type == ServiceType.WORK:
            state.detected_service = detection.service_key
            need_identified = True
        elif is_symptom and detection.route_to:
            state.detected_service = detection.route_to

        triage_hint = None
        if problem_described:
            entry = catalog.get(detection.service_key) if is_symptom else None
            triage_hint = build_triage_hint(
                entry.display_name if entry else None,
                detection.route_to,
                detection.triage_question,
            )

        needed = slot_manager.missing_required(state.known_slots)
        trace.next_slot = needed[0].slot_id if needed else None
        system_prompt = build_turn_prompt(
            company,
            state,
            needed,
            triage_hint=triage_hint,
            area_hint=service_area_hint(utterance, company.service_areas),
            rescue=frustrated,
            last_said_chars=self._config.engine.last_said_chars,
        )
        trace.prompt_chars = len(system_prompt)

        decision = await self._generate(
            build_messages(system_prompt, prior_history, utterance), slot_manager, trace
        )

        cleaned = ReplyGuardrail(
            company.forbidden_phrases, self._config.engine.max_ack_chars
        ).clean(decision.ack)
        for violation in cleaned.violations:
            trace.add_event(f"guardrail:{violation.violation_type}")
        ack = cleaned.text or company.style.default_ack

        had_partial = state.partial_name is not None
        outcome = slot_manager.merge(state, decision.values, company.service_type_vocabulary)
        for slot_id in outcome.conflicts:
            trace.add_event(f"conflict:{slot_id}")
        if had_partial and state.partial_name is not None:
            if slot_manager.settle_partial_name(state):
                trace.add_event("partial_name_accepted")

        reply = self._assemble_reply(state, ack, decision, outcome, slot_manager,
                                     company.style.default_ack, trace)

        previous_mode = state.mode
        state.mode = self._machine.resolve(
            state.mode,
            TurnSignals(
                frustrated=frustrated,
                problem_described=problem_described,
                need_identified=need_identified or bool(outcome.added),
                all_required_filled=slot_manager.all_required_filled(state.known_slots),
            ),
        )
        if state.mode == ConversationMode.CONFIRMATION and previous_mode != state.mode:
            summary = slot_manager.confirmation_summary(
                state.known_slots,
                company.style.confirmation_intro,
                company.style.confirmation_question,
            )
            if summary:
                reply = _join(_drop_questions(reply), summary)
                trace.add_event("confirmation_readback")
            elif not reply.endswith("?"):
                reply = _join(reply, company.style.confirmation_question)

        state.miss_count = 0
        trace.path = TurnPath.GENERATOR
        return reply

    def _deterministic_reply(
        self,
        state: ConversationState,
        detection: DetectionResult,
        trace: TurnTrace,
        frustrated: bool,
    ) -> str:
        if detection.action == DetectionAction.DETERMINISTIC_DECLINE:
            trace.path = TurnPath.DETERMINISTIC_DECLINE
        else:
            trace.path = TurnPath.DETERMINISTIC_ADMIN
        logger.info(
            "Short-circuit %s for service '%s'",
            detection.action.value, detection.service_key,
        )
        if frustrated:
            state.mode = self._machine.resolve(state.mode, TurnSignals(frustrated=True))
        state.miss_count = 0
        return detection.reply or ""

    def _quick_answer(
        self,
        state: ConversationState,
        utterance: str,
        company: CompanyConfig,
        slot_manager: SlotManager,
        trace: TurnTrace,
    ) -> Optional[str]:
        matcher = QuickAnswerMatcher(
            company.quick_answers, self._config.engine.quick_answer_min_ratio
        )
        match = matcher.match(utterance)
        if match is None:
            return None

        pending = slot_manager.next_missing(state.known_slots)
        question = slot_manager.question_for(pending, state) if pending else None
        trace.path = TurnPath.QUICK_ANSWER
        trace.chosen_slot = pending.slot_id if pending and state.mode == ConversationMode.BOOKING else None
        trace.add_event(f"quick_answer:{match.answer.category}")
        state.miss_count = 0
        return build_quick_answer_reply(match.answer.answer, state.mode, company.style, question)

    async def _generate(
        self,
        messages: list,
        slot_manager: SlotManager,
        trace: TurnTrace,
    ) -> GeneratorDecision:
        model = self._config.model
        request = GeneratorRequest(
            messages=messages,
            temperature=model.llm_temperature,
            max_tokens=model.llm_max_tokens,
            response_schema=RESPONSE_SCHEMA,
        )
        try:
            response = await asyncio.wait_for(
                self._generator.generate(request), timeout=model.llm_timeout_sec
            )
        except asyncio.TimeoutError:
            raise GeneratorTimeoutError(
                f"No generator response within {model.llm_timeout_sec}s"
            ) from None

        trace.generator_raw = response.content
        trace.prompt_tokens = response.prompt_tokens
        trace.completion_tokens = response.completion_tokens

        decision = parse_generator_output(response.content, slot_manager)
        trace.generator_slot = decision.slot
        if decision.repaired:
            trace.add_event("output_repaired")
        if decision.repaired and not decision.ack:
            raise GeneratorError("Generator output was empty after repair")
        return decision

    def _assemble_reply(
        self,
        state: ConversationState,
        ack: str,
        decision: GeneratorDecision,
        outcome: MergeOutcome,
        slot_manager: SlotManager,
        default_ack: str,
        trace: TurnTrace,
    ) -> str:
        """Generated ack plus, where needed, a configured question spoken verbatim."""
        if outcome.followup_question:
            trace.chosen_slot = outcome.followup_slot
            return _join(_drop_questions(ack) or default_ack, outcome.followup_question)

        if decision.slot == NO_SLOT:
            return ack

        spec = slot_manager.get(decision.slot)
        if spec is None:
            return ack

        if state.has_slot(spec.slot_id):
            # Never re-ask: move on to the next slot that is still empty.
            trace.add_event(f"coerced_filled_slot:{spec.slot_id}")
            ack = _drop_questions(ack) or default_ack
            spec = slot_manager.next_missing(state.known_slots)
            if spec is None:
                return ack
            trace.chosen_slot = spec.slot_id
            return _join(ack, slot_manager.question_for(spec, state))

        expected = slot_manager.next_missing(state.known_slots)
        if expected is not None and expected.slot_id != spec.slot_id:
            # Slots are requested in ascending order only.
            trace.add_event(f"coerced_out_of_order:{spec.slot_id}")
            ack = _drop_questions(ack) or default_ack
            trace.chosen_slot = expected.slot_id
            return _join(ack, slot_manager.question_for(expected, state))

        trace.chosen_slot = spec.slot_id
        if self._already_asks(ack, spec):
            return ack
        return _join(ack, slot_manager.question_for(spec, state))
