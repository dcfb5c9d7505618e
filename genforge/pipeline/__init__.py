"""
GenForge Generation Pipeline.

Wires the quality and recovery components around an injected generation
backend:

    analyze -> session (locked) -> recommendations -> personalize
    -> generate under the retry policy -> validate with fallbacks
    -> quality gate -> record outcome -> save session -> metrics

The backend only has to turn a prompt into an artifact. Every failure it
raises is classified before the pipeline retries or gives up.

Copyright (c) 2025 GenForge
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import structlog

from genforge.exceptions import GenerationCancelled, QualityGateError, RetryExhausted
from genforge.intent import Analysis, IntentAnalyzer, get_intent_analyzer
from genforge.metrics import ErrorRecord, GenerationRecord, QualityMetricsTracker, get_quality_metrics_tracker
from genforge.personalization import PersonalizedTemplate, TemplatePersonalizer, get_personalizer
from genforge.persistence import GenerationOutcome
from genforge.recovery import ErrorAnalysis, ErrorContext, RetryExecutor, get_error_classifier
from genforge.sessions import SessionManager, get_session_manager
from genforge.utils import monotonic_ms
from genforge.validation import Artifact, ArtifactValidator, ValidationResult, get_validator

logger = structlog.get_logger(__name__)

BASE_TEMPLATES: Dict[str, str] = {
    "saas": "saas-dashboard",
    "ecommerce": "ecommerce-store",
    "blog": "blog",
    "portfolio": "portfolio",
}
DEFAULT_TEMPLATE = "nextjs-app"
REQUEST_SUMMARY_LENGTH = 200


class GenerationBackend(Protocol):
    """External collaborator that produces an artifact from a prompt."""

    async def generate(self, prompt: str, params: Dict[str, Any]) -> Artifact: ...


@dataclass
class PipelineResult:
    analysis: Analysis
    template: PersonalizedTemplate
    validation: Optional[ValidationResult] = None
    attempts: int = 0
    success: bool = False
    error: Optional[ErrorAnalysis] = None
    artifact: Optional[Artifact] = None
    duration_ms: int = 0


def base_template_for(analysis: Analysis) -> str:
    return BASE_TEMPLATES.get(analysis.domain, DEFAULT_TEMPLATE)


class GenerationPipeline:
    """
    One generation request from text to a validated artifact.

    Usage:
        pipeline = GenerationPipeline()
        result = await pipeline.run("SaaS dashboard with analytics", "session-1", backend)
        if not result.success:
            print(result.error.user_message)
    """

    def __init__(
        self,
        analyzer: Optional[IntentAnalyzer] = None,
        sessions: Optional[SessionManager] = None,
        personalizer: Optional[TemplatePersonalizer] = None,
        validator: Optional[ArtifactValidator] = None,
        executor: Optional[RetryExecutor] = None,
        metrics: Optional[QualityMetricsTracker] = None,
    ):
        self.analyzer = analyzer or get_intent_analyzer()
        self.sessions = sessions or get_session_manager()
        self.personalizer = personalizer or get_personalizer()
        self.validator = validator or get_validator()
        self.executor = executor or RetryExecutor(get_error_classifier())
        self.metrics = metrics or get_quality_metrics_tracker()

    async def run(
        self,
        request_text: str,
        session_id: str,
        backend: GenerationBackend,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PipelineResult:
        """
        Run one request for a session.

        Requests for the same session are serialized. A failed generation is
        reported in the result, not raised.

        Raises:
            GenerationCancelled: cancel_event was set; the session is not updated
        """
        started = monotonic_ms()
        analysis = self.analyzer.analyze(request_text)
        log = logger.bind(session_id=session_id, domain=analysis.domain)
        log.info(
            "Request analyzed",
            intent=analysis.intent,
            complexity=analysis.complexity.value,
            confidence=round(analysis.confidence, 2),
            features=list(analysis.key_features),
        )

        async with self.sessions.session_lock(session_id):
            session = self.sessions.get_or_create(session_id)
            recommendations = self.sessions.generate_recommendations(analysis, session)
            template = self.personalizer.personalize(
                base_template_for(analysis), analysis, session, recommendations
            )
            log.info(
                "Template personalized",
                template=template.base_template,
                modifications=len(template.modifications),
                confidence=round(template.confidence, 2),
            )

            prompt = self.personalizer.apply_modifications(request_text, template.modifications)
            params = {
                "template": template.base_template,
                "analysis": analysis.to_dict(),
                "session_id": session_id,
            }
            threshold = session.preferences.quality_threshold
            state: Dict[str, Any] = {"artifact": None, "validation": None, "attempts": 0}

            async def attempt(number: int) -> Artifact:
                state["attempts"] = number
                artifact = await backend.generate(prompt, dict(params, attempt=number))
                state["artifact"] = artifact
                validation = await self.validator.validate_with_fallbacks(artifact)
                state["validation"] = validation
                log.info("Artifact validated", attempt=number, artifact=artifact.name,
                         score=validation.overall_score, fallbacks=validation.fallbacks_used)
                if validation.overall_score < threshold:
                    raise QualityGateError(validation.overall_score, threshold, artifact.name)
                return artifact

            context = ErrorContext(
                step="generate",
                session_id=session_id,
                max_attempts=self.executor.config.max_attempts,
                extra={"template": template.base_template},
            )
            error: Optional[ErrorAnalysis] = None
            try:
                await self.executor.run(attempt, context, cancel_event)
                success = True
            except GenerationCancelled:
                log.warning("Generation cancelled", attempts=state["attempts"])
                raise
            except RetryExhausted as e:
                success = False
                error = e.analysis
                self.metrics.record_error(ErrorRecord(
                    kind=error.kind.value if error else "unclassified",
                    step=context.step,
                    attempt=e.attempts,
                    retried=e.attempts > 1,
                    session_id=session_id,
                ))

            validation: Optional[ValidationResult] = state["validation"]
            artifact: Optional[Artifact] = state["artifact"]
            duration = int(monotonic_ms() - started)
            outcome = GenerationOutcome(
                success=success,
                score=validation.overall_score if validation else None,
                duration_ms=duration,
                artifact_count=len(artifact.list_files()) if artifact is not None else 0,
            )
            self.sessions.record_outcome(session, analysis, outcome, request_text[:REQUEST_SUMMARY_LENGTH])
            self.sessions.save(session)

        if validation is not None:
            record = GenerationRecord.from_validation(validation, session_id=session_id, domain=analysis.domain,
                                                      success=success, attempts=state["attempts"],
                                                      duration_ms=duration,
                                                      error_kind=error.kind.value if error else None)
        else:
            record = GenerationRecord(session_id=session_id, domain=analysis.domain, success=success,
                                      attempts=state["attempts"], duration_ms=duration,
                                      error_kind=error.kind.value if error else None)
        self.metrics.record_generation(record)

        if success:
            log.info("Generation succeeded", attempts=state["attempts"], score=outcome.score, duration_ms=duration)
        else:
            log.error(
                "Generation failed",
                attempts=state["attempts"],
                kind=error.kind.value if error else "unclassified",
                user_message=error.user_message if error else None,
            )

        return PipelineResult(
            analysis=analysis,
            template=template,
            validation=validation,
            attempts=state["attempts"],
            success=success,
            error=error,
            artifact=artifact,
            duration_ms=duration,
        )


_pipeline: Optional[GenerationPipeline] = None


def get_pipeline() -> GenerationPipeline:
    """Get or create the shared pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = GenerationPipeline()
    return _pipeline


__all__ = [
    "GenerationBackend",
    "GenerationPipeline",
    "PipelineResult",
    "base_template_for",
    "get_pipeline",
]
