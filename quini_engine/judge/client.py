"""Client for the external LLM judge (Groq chat models through LangChain).

The judge re-ranks the best-scored finalists into a top-3. It is optional:
any failure falls back to the engine's own score order.
"""

import groq
from langchain_core.exceptions import OutputParserException
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.output_parsers import JsonOutputParser
from langchain_groq import ChatGroq
from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.errors import JudgeServiceError, PreconditionViolation
from quini_engine.engine.normalizer import validate_combination
from quini_engine.judge.prompt import SYSTEM_PROMPT, StatisticalSummary, build_prompt
from quini_engine.judge.retry import RETRYABLE_STATUS, RetryPolicy
from quini_engine.schemas.wheeling import JudgeVerdict, ScoredCombination

_PARSER = JsonOutputParser()

FALLBACK_REASONS = [
    "Selected by composite priority score",
    "Based on the local statistical analysis",
]


def extract_json(text: str) -> dict:
    """Parse the reply as JSON, raw or inside a fenced block."""
    try:
        parsed = _PARSER.parse(text)
    except OutputParserException as e:
        raise JudgeServiceError(f"Malformed JSON in judge reply: {text[:200]!r}") from e
    if not isinstance(parsed, dict):
        raise JudgeServiceError("Judge reply is not a JSON object")
    return parsed


def parse_verdict(
    text: str,
    candidates: list[ScoredCombination],
    number_min: int | None = None,
    number_max: int | None = None,
) -> JudgeVerdict:
    parsed = extract_json(text)

    top3: list[list[int]] = []
    for combo in parsed.get("top_3") or []:
        if not isinstance(combo, list):
            continue
        try:
            numbers = list(validate_combination(combo, number_min, number_max))
        except PreconditionViolation:
            logger.debug("[judge] Dropping invalid combination {}", combo)
            continue
        if numbers not in top3:
            top3.append(numbers)

    if len(top3) < 3:
        logger.warning("[judge] Only {} valid combinations returned, filling from ranking", len(top3))
        for candidate in candidates:
            if len(top3) == 3:
                break
            numbers = list(candidate.numbers)
            if numbers not in top3:
                top3.append(numbers)

    reasons = parsed.get("reasons", parsed.get("razones")) or []
    return JudgeVerdict(
        top3=top3[:3],
        analysis=str(parsed.get("analysis", parsed.get("analisis_tecnico")) or "No analysis provided"),
        reasons=[str(r) for r in reasons],
        source="judge",
    )


class JudgeClient:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        base_url: str | None = None,
        llm=None,
        retry: RetryPolicy | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.JUDGE_API_KEY
        if not self.api_key:
            raise JudgeServiceError("JUDGE_API_KEY is not configured")
        self.model = model or settings.JUDGE_MODEL
        self.retry = retry or RetryPolicy()
        if llm is None:
            llm = self._build_llm(
                settings.JUDGE_TEMPERATURE if temperature is None else temperature,
                timeout or settings.JUDGE_TIMEOUT,
                base_url or settings.JUDGE_BASE_URL,
            )
        self.llm = llm

    def _build_llm(self, temperature: float, timeout: float, base_url: str | None):
        options = {
            "model": self.model,
            "api_key": self.api_key,
            "temperature": temperature,
            "timeout": timeout,
            "max_tokens": 4096,
            # RetryPolicy owns retries
            "max_retries": 0,
        }
        if base_url:
            options["base_url"] = base_url
        return ChatGroq(**options).bind(response_format={"type": "json_object"})

    def _complete(self, prompt: str) -> str:
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
        try:
            reply = self.llm.invoke(messages)
        except groq.APIStatusError as e:
            status = e.status_code
            raise JudgeServiceError(
                f"Judge returned HTTP {status}: {e.message}",
                retryable=status in RETRYABLE_STATUS or status >= 500,
                status_code=status,
            ) from e
        except groq.APIConnectionError as e:
            raise JudgeServiceError(f"Judge unreachable: {e}", retryable=True) from e

        content = reply.content
        if not isinstance(content, str) or not content.strip():
            raise JudgeServiceError("Empty reply from judge")
        return content

    def verdict(
        self,
        candidates: list[ScoredCombination],
        summary: StatisticalSummary,
        number_min: int | None = None,
        number_max: int | None = None,
    ) -> JudgeVerdict:
        if not candidates:
            raise PreconditionViolation("No candidate combinations for the judge")
        lo = settings.NUMBER_MIN if number_min is None else number_min
        hi = settings.NUMBER_MAX if number_max is None else number_max

        prompt = build_prompt(candidates, summary, lo, hi)
        logger.info("[judge] Requesting verdict on {} finalists from {}", len(candidates), self.model)
        text = self.retry.call(lambda: self._complete(prompt), label="judge")
        return parse_verdict(text, candidates, lo, hi)


def score_top3(ranking: list[ScoredCombination], source: str, note: str) -> JudgeVerdict:
    reasons = list(FALLBACK_REASONS)
    if source == "fallback":
        reasons.append("Judge service unavailable")
    return JudgeVerdict(
        top3=[list(c.numbers) for c in ranking[:3]],
        analysis=note,
        reasons=reasons,
        source=source,
    )


def select_final_top3(
    ranking: list[ScoredCombination],
    summary: StatisticalSummary | None = None,
    client: JudgeClient | None = None,
    top_n: int | None = None,
) -> JudgeVerdict:
    """Judge's top-3 when a client is given, the score order otherwise.

    Judge failures never propagate: the score-ranked top-3 comes back
    annotated as a fallback.
    """
    if client is None or summary is None or not ranking:
        return score_top3(ranking, "score", "Top 3 by composite score")

    finalists = ranking[: top_n or settings.JUDGE_TOP_N]
    try:
        return client.verdict(finalists, summary)
    except (JudgeServiceError, groq.APIError) as e:
        logger.warning("[judge] Verdict failed, using score order: {}", e)
        return score_top3(
            ranking, "fallback", f"Fallback: judge unavailable ({e}). Top 3 by composite score."
        )
