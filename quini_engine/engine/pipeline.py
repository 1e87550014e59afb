"""End-to-end reduction run: history in, validated and ranked system out."""

from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.affinity import AffinityMatrix
from quini_engine.engine.bias import BiasDetector
from quini_engine.engine.entropy import build_delta_distribution
from quini_engine.engine.executor import ParallelEvaluator
from quini_engine.engine.errors import JudgeServiceError
from quini_engine.engine.normalizer import normalize_history
from quini_engine.engine.scoring import CompositeScorer
from quini_engine.engine.statistics import StatisticsEngine, pressure_ranking
from quini_engine.engine.wheeling import WheelingEngine
from quini_engine.judge.client import JudgeClient, score_top3, select_final_top3
from quini_engine.judge.prompt import build_summary
from quini_engine.schemas.draws import HistoricalDraw
from quini_engine.schemas.statistics import StatisticalAnalysis
from quini_engine.schemas.wheeling import CoverageGuarantee, PipelineResult, ScoringWeights


def select_base_numbers(
    analysis: StatisticalAnalysis,
    affinity: AffinityMatrix,
    size: int | None = None,
    pressure_count: int | None = None,
) -> list[int]:
    """Highest delay pressure first, then the numbers with the strongest
    partners, without repeats."""
    size = size or settings.BASE_SET_SIZE
    pressure_count = pressure_count or settings.BASE_PRESSURE_COUNT

    by_pressure = [n for n, _ in pressure_ranking(analysis)[:pressure_count]]
    by_affinity = sorted(
        (s.number for s in analysis.numbers),
        key=lambda n: (-affinity.mean_affinity(n, 10), n),
    )

    base = []
    for number in by_pressure + by_affinity:
        if len(base) == size:
            break
        if number not in base:
            base.append(number)
    return sorted(base)


class ReductionPipeline:
    """Wire the engines together for one stateless run."""

    def __init__(
        self,
        evaluator: ParallelEvaluator | None = None,
        judge: JudgeClient | None = None,
    ):
        self.evaluator = evaluator
        self.judge = judge

    def run(
        self,
        draws: list[HistoricalDraw],
        base_numbers: list[int] | None = None,
        guarantee: CoverageGuarantee | None = None,
        weights: ScoringWeights | None = None,
        max_combinations: int | None = None,
        use_judge: bool = False,
        modality: str | None = None,
    ) -> PipelineResult:
        # Fresh evaluator per run unless injected: no state survives a run
        evaluator = self.evaluator or ParallelEvaluator()

        history = normalize_history(draws, modality or settings.MODALITY)
        analysis = StatisticsEngine().analyze(history)
        affinity = AffinityMatrix.build(history)
        deltas = build_delta_distribution(history)
        bias = BiasDetector().chi_square_test([d.numbers for d in history])
        logger.info(
            "[pipeline] {} draws, bias p={:.4f}, {} high-delay numbers",
            len(history), bias.p_value, len(analysis.high_delay_numbers),
        )

        base = base_numbers or select_base_numbers(analysis, affinity)
        wheeling = WheelingEngine(evaluator=evaluator)
        system = wheeling.generate(base, guarantee, max_combinations)
        validation = wheeling.validate(system)

        scorer = CompositeScorer(analysis, affinity, weights, evaluator=evaluator)
        ranking = scorer.rank(system.combinations)

        verdict = self._verdict(ranking, analysis, deltas, use_judge)
        if evaluator.degraded:
            logger.warning("[pipeline] Parallel evaluation degraded to sequential during run")

        return PipelineResult(
            analysis=analysis,
            deltas=deltas,
            bias=bias,
            system=system,
            validation=validation,
            ranking=ranking,
            verdict=verdict,
            degraded=evaluator.degraded,
        )

    def _verdict(self, ranking, analysis, deltas, use_judge: bool):
        if not use_judge:
            return select_final_top3(ranking)

        client = self.judge
        if client is None:
            try:
                client = JudgeClient()
            except JudgeServiceError as e:
                logger.warning("[pipeline] Judge requested but unavailable: {}", e)
                return score_top3(
                    ranking, "fallback", f"Fallback: {e}. Top 3 by composite score."
                )
        return select_final_top3(ranking, build_summary(analysis, deltas), client)
