"""
Question Allocator
Turns a selection policy plus a question inventory into a shuffled paper

No storage access here; the random source is always passed in. Used at
release time (one shared set) and at start time (one set per student).
"""
import logging
import random
from typing import Dict, List, Optional, Sequence, Set, Union

from exam_portal.core.exceptions import (
    EmptySelectionError,
    InsufficientInventoryError,
    InsufficientQuestionsError,
    InvalidPolicyError,
    TooManyPoolsError,
)
from exam_portal.models.common import DIFFICULTY_LEVELS
from exam_portal.models.policy import CustomPolicy, PercentagePolicy
from exam_portal.models.question import Question

logger = logging.getLogger(__name__)

MAX_POOLS_PER_QUERY = 10

# Bucket that absorbs the difference between the rounded counts and the total
DRIFT_BUCKET = "easy"

Policy = Union[PercentagePolicy, CustomPolicy]


# ============================================================================
# VALIDATION
# ============================================================================

def check_pool_selection(pool_ids: Sequence[str], max_pools: int = MAX_POOLS_PER_QUERY) -> None:
    """
    Validate the list of source pools before any inventory is read.

    Raises:
        InvalidPolicyError: If no pool is selected
        TooManyPoolsError: If more than ``max_pools`` pools are selected
    """
    if not pool_ids:
        raise InvalidPolicyError("Select at least one question pool.")
    if len(pool_ids) > max_pools:
        raise TooManyPoolsError(len(pool_ids), max_pools)


def source_pool_ids(policy: Policy, selected_pool_ids: Sequence[str]) -> List[str]:
    """Pools whose questions must be loaded for ``policy``, in selection order"""
    pool_ids = list(dict.fromkeys(selected_pool_ids))
    if isinstance(policy, CustomPolicy):
        for pool_id in policy.poolQuestionMap:
            if pool_id not in pool_ids:
                pool_ids.append(pool_id)
    return pool_ids


# ============================================================================
# COUNT COMPUTATION
# ============================================================================

def round_half_up(total: int, percentage: int) -> int:
    """
    ``round(total * percentage / 100)`` with halves rounded up.

    Computed in integers so 2.5 is always 3 (no float or banker's rounding).

    Examples:
        >>> round_half_up(10, 25)
        3
        >>> round_half_up(8, 25)
        2
    """
    return (2 * total * percentage + 100) // 200


def reconcile_rounding_drift(counts: Dict[str, int], total: int) -> Dict[str, int]:
    """
    Make the per-difficulty counts add up to ``total``.

    The entire drift, positive or negative, goes to the easy bucket.

    Raises:
        InvalidPolicyError: If absorbing an overshoot would make easy negative
    """
    drift = total - sum(counts.values())
    if drift == 0:
        return dict(counts)

    reconciled = dict(counts)
    reconciled[DRIFT_BUCKET] = reconciled.get(DRIFT_BUCKET, 0) + drift

    if reconciled[DRIFT_BUCKET] < 0:
        raise InvalidPolicyError(
            f"Difficulty distribution cannot be applied to {total} questions: "
            f"rounding leaves {-reconciled[DRIFT_BUCKET]} too many questions "
            f"and the {DRIFT_BUCKET} bucket has none to give up."
        )

    logger.debug(f"⚖️ Rounding drift {drift:+d} absorbed by {DRIFT_BUCKET}: {reconciled}")
    return reconciled


def check_percentages(policy: PercentagePolicy) -> None:
    total = policy.difficultyDistribution.total()
    if total != 100:
        raise InvalidPolicyError(f"Difficulty percentages must sum to 100 (got {total}).")


def compute_difficulty_counts(policy: PercentagePolicy) -> Dict[str, int]:
    """
    Exact draw count per difficulty for a percentage policy.

    Raises:
        InvalidPolicyError: If percentages do not sum to 100
    """
    check_percentages(policy)
    distribution = policy.difficultyDistribution
    raw = {
        level: round_half_up(policy.totalQuestions, getattr(distribution, level))
        for level in DIFFICULTY_LEVELS
    }
    return reconcile_rounding_drift(raw, policy.totalQuestions)


# ============================================================================
# SAMPLING
# ============================================================================

def partition_by_difficulty(inventory: Sequence[Question]) -> Dict[str, List[Question]]:
    """Group questions by case-insensitive difficulty; unknown tags are dropped"""
    buckets: Dict[str, List[Question]] = {level: [] for level in DIFFICULTY_LEVELS}
    for question in inventory:
        bucket = buckets.get(question.difficulty_key)
        if bucket is not None:
            bucket.append(question)
    return buckets


def draw(candidates: Sequence[Question], count: int, rng: random.Random) -> List[Question]:
    """Uniform sample of ``count`` questions without replacement"""
    if count <= 0:
        return []
    shuffled = list(candidates)
    rng.shuffle(shuffled)
    return shuffled[:count]


def _unique_by_id(inventory: Sequence[Question]) -> List[Question]:
    seen: Set[str] = set()
    unique = []
    for question in inventory:
        if question.id not in seen:
            seen.add(question.id)
            unique.append(question)
    return unique


def allocate_percentage(
    policy: PercentagePolicy,
    inventory: Sequence[Question],
    rng: random.Random
) -> List[Question]:
    """
    Draw ``totalQuestions`` from the combined inventory by difficulty percentage.

    Every bucket is checked before anything is drawn, so a failure never
    leaves a partial paper behind.

    Raises:
        InvalidPolicyError: Percentages do not sum to 100
        InsufficientInventoryError: Fewer questions than totalQuestions overall
        InsufficientQuestionsError: One difficulty bucket is too small
    """
    check_percentages(policy)

    inventory = _unique_by_id(inventory)
    if len(inventory) < policy.totalQuestions:
        raise InsufficientInventoryError(policy.totalQuestions, len(inventory))

    counts = compute_difficulty_counts(policy)

    buckets = partition_by_difficulty(inventory)

    for level in DIFFICULTY_LEVELS:
        if counts[level] > len(buckets[level]):
            logger.warning(
                f"⚠️ Not enough {level} questions: "
                f"required {counts[level]}, available {len(buckets[level])}"
            )
            raise InsufficientQuestionsError(level, counts[level], len(buckets[level]))

    selected: List[Question] = []
    for level in DIFFICULTY_LEVELS:
        selected.extend(draw(buckets[level], counts[level], rng))

    rng.shuffle(selected)

    logger.info(
        f"🎲 Percentage allocation: {len(selected)} questions "
        f"(easy={counts['easy']}, medium={counts['medium']}, hard={counts['hard']})"
    )
    return selected


def allocate_custom(
    policy: CustomPolicy,
    inventory: Sequence[Question],
    rng: random.Random
) -> List[Question]:
    """
    Draw exact counts per (pool, difficulty) bucket.

    Buckets are processed in map order (easy, medium, hard within a pool) and
    the first bucket that cannot be covered aborts the whole allocation. The
    ``used_ids`` set only stops this one paper from repeating a question; it is
    not shared between students.

    Raises:
        InvalidPolicyError: Declared total differs from the sum of counts
        EmptySelectionError: All counts are zero
        InsufficientQuestionsError: A bucket holds fewer questions than requested
    """
    requested = policy.requested_total()
    if policy.totalQuestions is not None and policy.totalQuestions != requested:
        raise InvalidPolicyError(
            f"Total questions ({policy.totalQuestions}) does not match "
            f"pool distribution sum ({requested})"
        )
    if requested == 0:
        raise EmptySelectionError("Configuration resulted in 0 questions selected.")

    inventory = _unique_by_id(inventory)
    used_ids: Set[str] = set()
    selected: List[Question] = []

    for pool_id, counts in policy.poolQuestionMap.items():
        pool_questions = [q for q in inventory if q.poolId == pool_id]

        for level in DIFFICULTY_LEVELS:
            count = getattr(counts, level)
            if count == 0:
                continue

            available = [
                q for q in pool_questions
                if q.difficulty_key == level and q.id not in used_ids
            ]
            if len(available) < count:
                logger.warning(
                    f"⚠️ Not enough {level} questions in pool {pool_id}: "
                    f"required {count}, available {len(available)}"
                )
                raise InsufficientQuestionsError(level, count, len(available), pool_id=pool_id)

            picked = draw(available, count, rng)
            used_ids.update(q.id for q in picked)
            selected.extend(picked)

    rng.shuffle(selected)

    logger.info(
        f"🎲 Custom allocation: {len(selected)} questions "
        f"from {len(policy.poolQuestionMap)} pool(s)"
    )
    return selected


def allocate(
    policy: Policy,
    inventory: Sequence[Question],
    rng: Optional[random.Random] = None
) -> List[Question]:
    """
    Allocate a shuffled paper for ``policy`` from ``inventory``.

    Args:
        policy: PercentagePolicy or CustomPolicy
        inventory: Candidate questions (already restricted to course and pools)
        rng: Random source; a fresh unseeded ``random.Random`` when omitted

    Returns:
        Question snapshots in presentation order
    """
    rng = rng or random.Random()

    if isinstance(policy, CustomPolicy):
        return allocate_custom(policy, inventory, rng)
    return allocate_percentage(policy, inventory, rng)


def allocate_question_ids(
    policy: Policy,
    inventory: Sequence[Question],
    rng: Optional[random.Random] = None
) -> List[str]:
    """Shared-mode variant of :func:`allocate` returning ids only"""
    return [q.id for q in allocate(policy, inventory, rng)]


def select_whole_pool(
    inventory: Sequence[Question],
    rng: Optional[random.Random] = None
) -> List[str]:
    """
    Every question id in the inventory, shuffled once.

    Raises:
        EmptySelectionError: If the selected pools hold no questions
    """
    rng = rng or random.Random()
    question_ids = [q.id for q in _unique_by_id(inventory)]

    if not question_ids:
        raise EmptySelectionError("No questions found in the selected pool(s).")

    rng.shuffle(question_ids)
    logger.info(f"🎲 Whole-pool selection: {len(question_ids)} questions")
    return question_ids
