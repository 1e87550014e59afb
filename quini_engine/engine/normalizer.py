"""Draw normalizer: validates raw draws and derives their canonical shape."""

from collections.abc import Iterable

from loguru import logger

from quini_engine.config import settings
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.schemas.draws import HistoricalDraw, Modality, NormalizedDraw


def validate_number(
    number: int,
    number_min: int | None = None,
    number_max: int | None = None,
) -> int:
    """Reject anything that is not an integer inside the domain. Never clamps."""
    lo = settings.NUMBER_MIN if number_min is None else number_min
    hi = settings.NUMBER_MAX if number_max is None else number_max
    if isinstance(number, bool) or not isinstance(number, int):
        raise PreconditionViolation(f"Number must be an integer, got {number!r}")
    if number < lo or number > hi:
        raise PreconditionViolation(f"Number {number} outside domain [{lo}, {hi}]")
    return number


def validate_combination(
    numbers: Iterable[int],
    number_min: int | None = None,
    number_max: int | None = None,
    size: int | None = None,
) -> tuple[int, ...]:
    """Return the combination sorted ascending, or raise on any violation."""
    size = settings.PICK_COUNT if size is None else size
    values = list(numbers)
    if len(values) != size:
        raise PreconditionViolation(
            f"Combination must have exactly {size} numbers, got {len(values)}"
        )
    for n in values:
        validate_number(n, number_min, number_max)
    if len(set(values)) != len(values):
        raise PreconditionViolation(f"Combination has duplicate numbers: {values}")
    return tuple(sorted(values))


def gaps(numbers: tuple[int, ...]) -> tuple[int, ...]:
    return tuple(numbers[i] - numbers[i - 1] for i in range(1, len(numbers)))


def normalize_draw(
    draw: HistoricalDraw,
    number_min: int | None = None,
    number_max: int | None = None,
) -> NormalizedDraw:
    try:
        numbers = validate_combination(draw.numbers, number_min, number_max)
    except PreconditionViolation as e:
        raise PreconditionViolation(f"Draw {draw.draw_number} ({draw.draw_date}): {e}") from e

    even = sum(1 for n in numbers if n % 2 == 0)
    return NormalizedDraw(
        draw_number=draw.draw_number,
        draw_date=draw.draw_date,
        modality=draw.modality,
        numbers=numbers,
        total=sum(numbers),
        even_count=even,
        odd_count=len(numbers) - even,
        spacing=gaps(numbers),
        amplitude=numbers[-1] - numbers[0],
    )


def normalize_history(
    draws: Iterable[HistoricalDraw],
    modality: Modality | str | None = None,
    number_min: int | None = None,
    number_max: int | None = None,
) -> list[NormalizedDraw]:
    """Normalize a batch of draws for one modality, ordered by date.

    Draw date is the ordering key; the draw number only breaks ties between
    draws published on the same day. Any invalid record rejects the batch.
    """
    wanted = Modality(modality) if modality is not None else None
    normalized = []
    skipped = 0
    for draw in draws:
        if wanted is not None and draw.modality != wanted:
            skipped += 1
            continue
        normalized.append(normalize_draw(draw, number_min, number_max))

    if skipped:
        logger.debug("[normalizer] Skipped {} draws of other modalities", skipped)
    normalized.sort(key=lambda d: (d.draw_date, d.draw_number))
    return normalized
