"""Weighted priority scores and time-of-day recommendations for work items.

Each open item gets five factors in ``[0, 1]``: urgency from how close its due
instant is, importance from its priority class, effort from its estimated
duration (short items score high as quick wins), context from the hour and
the item's wording, and collaboration. Items carry no collaborators, so
collaboration is the solo-work constant. The weighted sum is the score.
"""

from datetime import datetime

from focus_planner.db.models import (
    ItemRecommendations,
    PriorityFactors,
    SmartPriority,
    WorkItem,
)

WEIGHTS = {
    "urgency": 0.3,
    "importance": 0.25,
    "effort": 0.2,
    "context": 0.15,
    "collaboration": 0.1,
}
IMPORTANCE = {"urgent": 1.0, "normal": 0.5, "low": 0.3}
NO_DUE_URGENCY = 0.3
UNKNOWN_EFFORT = 0.5
SOLO_COLLABORATION = 0.3
QUICK_WIN_EFFORT = 0.8

# (days until due, urgency) checked in order; later dues score 0.2
URGENCY_STEPS = ((0, 1.0), (1, 0.9), (3, 0.7), (7, 0.5), (14, 0.3))
# (max minutes, effort); longer items score 0.2
EFFORT_STEPS = ((30, 0.9), (60, 0.7), (120, 0.5), (240, 0.3))

DEEP_WORK_WORDS = ("planning", "strategy", "analysis")
COLLAB_WORDS = ("meeting", "call", "review")
ADMIN_WORDS = ("email", "admin", "update")


def _text(item: WorkItem) -> str:
    return f"{item.title} {item.description or ''}".lower()


def _mentions(text: str, words) -> bool:
    return any(w in text for w in words)


def urgency_factor(item: WorkItem, at: datetime) -> float:
    if item.due_at is None:
        return NO_DUE_URGENCY
    days = (item.due_at - at).total_seconds() / 86400
    for limit, score in URGENCY_STEPS:
        if days < limit:
            return score
    return 0.2


def importance_factor(item: WorkItem) -> float:
    return IMPORTANCE.get(item.priority, 0.5)


def effort_factor(item: WorkItem) -> float:
    if not item.estimated_duration:
        return UNKNOWN_EFFORT
    for limit, score in EFFORT_STEPS:
        if item.estimated_duration <= limit:
            return score
    return 0.2


def context_factor(item: WorkItem, at: datetime) -> float:
    """How well the hour of ``at`` suits the kind of work the item describes."""
    text = _text(item)
    hour = at.hour
    if 8 <= hour < 11:
        return 0.9 if _mentions(text, DEEP_WORK_WORDS) else 0.7
    if 13 <= hour < 16:
        return 0.9 if _mentions(text, COLLAB_WORDS) else 0.6
    if 16 <= hour < 18:
        return 0.8 if _mentions(text, ADMIN_WORDS) else 0.5
    return 0.5


def weighted_score(factors: PriorityFactors) -> float:
    return sum(getattr(factors, name) * weight for name, weight in WEIGHTS.items())


def reasoning(factors: PriorityFactors) -> str:
    reasons = []
    if factors.urgency > 0.8:
        reasons.append("deadline is very close")
    elif factors.urgency > 0.6:
        reasons.append("deadline approaching")
    if factors.importance > 0.8:
        reasons.append("high impact")
    if factors.effort > QUICK_WIN_EFFORT:
        reasons.append("quick win")
    if factors.collaboration > 0.7:
        reasons.append("team dependency")
    if factors.context > 0.8:
        reasons.append("good time for it")
    if not reasons:
        return "Standard prioritization"
    return f"High priority: {', '.join(reasons)}"


def suggest_time_slot(item: WorkItem) -> str:
    text = _text(item)
    if _mentions(text, DEEP_WORK_WORDS + ("writing",)):
        return "morning"
    if _mentions(text, COLLAB_WORDS):
        return "afternoon"
    if _mentions(text, ADMIN_WORDS + ("filing",)):
        return "evening"
    return "flexible"


def score_item(item: WorkItem, at: datetime) -> SmartPriority:
    factors = PriorityFactors(
        urgency=urgency_factor(item, at),
        importance=importance_factor(item),
        effort=effort_factor(item),
        context=context_factor(item, at),
        collaboration=SOLO_COLLABORATION,
    )
    return SmartPriority(
        item=item,
        score=round(weighted_score(factors), 4),
        factors=factors,
        reasoning=reasoning(factors),
        suggested_time_slot=suggest_time_slot(item),
    )


def rank_items(items: list[WorkItem], at: datetime) -> list[SmartPriority]:
    """Score open items at ``at``, highest score first; ties keep input order."""
    scored = [score_item(i, at) for i in items if i.is_open]
    return sorted(scored, key=lambda s: -s.score)


def recommend(items: list[WorkItem], at: datetime) -> ItemRecommendations:
    """Top three, up to five quick wins, and up to three per part of the day."""
    ranked = rank_items(items, at)

    def slot(name):
        return [s for s in ranked if s.suggested_time_slot == name][:3]

    return ItemRecommendations(
        top_priority=ranked[:3],
        quick_wins=[s for s in ranked if s.factors.effort > QUICK_WIN_EFFORT][:5],
        morning=slot("morning"),
        afternoon=slot("afternoon"),
        evening=slot("evening"),
    )
