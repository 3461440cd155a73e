"""
Business logic for the planner, weekly goals and dashboard.
Pure functions over ingested records; no I/O.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import holidays

from dates import week_days
from models import (
    DailyCheckout,
    GoalStatus,
    Interaction,
    InteractionType,
    Task,
    TaskStatus,
    User,
    WeeklyGoal,
)

logger = logging.getLogger(__name__)

OVERWORK_POMODORO_LIMIT = 16
POMODORO_MINUTES = 25

ARCHIVED_GOAL_STATUSES = {GoalStatus.COMPLETED, GoalStatus.PARTIALLY_COMPLETED}


def tasks_for_day(tasks: List[Task], user_id: str, day_iso: str, week_iso: str) -> List[Task]:
    """
    Tasks a user planned for a given day.

    Args:
        tasks: All tasks
        user_id: Owner to filter on
        day_iso: Selected day (YYYY-MM-DD)
        week_iso: Monday of the selected day's week

    Returns:
        Tasks scheduled on that day, plus legacy tasks without a scheduled
        date whose week anchor matches
    """
    selected = []
    for t in tasks:
        if t.user_id != user_id:
            continue
        if t.scheduled_date:
            if t.scheduled_date == day_iso:
                selected.append(t)
        elif t.week_of_date == week_iso:
            selected.append(t)
    return selected


def daily_pomodoro_total(tasks: List[Task]) -> int:
    return sum(t.estimated_pomodoros for t in tasks)


def is_overworked(total_pomodoros: int) -> bool:
    return total_pomodoros > OVERWORK_POMODORO_LIMIT


def next_task_status(status: TaskStatus) -> TaskStatus:
    """Toggle To Do <-> Done."""
    return TaskStatus.TODO if status == TaskStatus.DONE else TaskStatus.DONE


def goals_for_week(goals: List[WeeklyGoal], user_id: str, week_iso: str) -> List[WeeklyGoal]:
    return [g for g in goals if g.user_id == user_id and g.week_of_date == week_iso]


def is_archived(goal: WeeklyGoal) -> bool:
    """Completed or Partially Completed goals are archived; the rest are active."""
    return goal.status in ARCHIVED_GOAL_STATUSES


def split_goals(goals: List[WeeklyGoal], user_id: str) -> Tuple[List[WeeklyGoal], List[WeeklyGoal]]:
    """Split a user's goals into (active, archived), newest start date first."""
    mine = [g for g in goals if g.user_id == user_id]
    mine.sort(key=lambda g: g.start_date or '', reverse=True)
    active = [g for g in mine if not is_archived(g)]
    archived = [g for g in mine if is_archived(g)]
    return active, archived


def compute_dashboard(user_id: str, checkouts: List[DailyCheckout], tasks: List[Task]) -> Dict[str, Any]:
    """
    Compute the dashboard headline metrics for one user.

    Args:
        user_id: User to compute metrics for
        checkouts: All check-ins
        tasks: All tasks

    Returns:
        Dictionary with streak, completed_tasks, total_tasks, missed_tasks,
        focus_pomodoros, focus_minutes, completion_rate, overworked_days, impact_score
    """
    user_checkouts = [c for c in checkouts if c.user_id == user_id]
    user_tasks = [t for t in tasks if t.user_id == user_id]

    # Distinct check-in days; undated check-ins are left out
    streak = len({c.date for c in user_checkouts if c.date})

    completed = sum(1 for t in user_tasks if t.status == TaskStatus.DONE)
    total = len(user_tasks)
    focus = sum(t.actual_pomodoros for t in user_tasks)

    pomos_by_date: Dict[str, int] = {}
    for t in user_tasks:
        if t.scheduled_date:
            pomos_by_date[t.scheduled_date] = pomos_by_date.get(t.scheduled_date, 0) + t.estimated_pomodoros
    overworked_days = sum(1 for total_pomos in pomos_by_date.values() if is_overworked(total_pomos))

    return {
        'streak': streak,
        'completed_tasks': completed,
        'total_tasks': total,
        'missed_tasks': total - completed,
        'focus_pomodoros': focus,
        'focus_minutes': focus * POMODORO_MINUTES,
        'completion_rate': round(completed / total * 100) if total > 0 else 0,
        'overworked_days': overworked_days,
        'impact_score': completed * 10 + streak * 5,
    }


def vibe_trend(checkouts: List[DailyCheckout], user_id: str, limit: int = 14) -> List[Dict[str, Any]]:
    """Last `limit` dated check-ins of a user, oldest first, as chart rows."""
    mine = [c for c in checkouts if c.user_id == user_id and c.date]
    mine.sort(key=lambda c: (c.timestamp, c.date))
    return [{'date': c.date, 'vibe': c.vibe_score} for c in mine[-limit:]]


def pomodoro_comparison(tasks: List[Task], user_id: str, limit: int = 5) -> List[Dict[str, Any]]:
    """Estimated vs actual pomodoros for a user's finished tasks."""
    done = [t for t in tasks if t.user_id == user_id and t.status == TaskStatus.DONE][:limit]
    rows = []
    for t in done:
        label = t.task_description if len(t.task_description) <= 12 else t.task_description[:10] + '...'
        rows.append({'task': label, 'Estimated': t.estimated_pomodoros, 'Actual': t.actual_pomodoros})
    return rows


def highlights(user_id: str, checkouts: List[DailyCheckout], interactions: List[Interaction],
               users: List[User], limit: int = 5) -> List[Dict[str, Any]]:
    """Newest kudos and replies left on a user's check-ins."""
    mine = {c.checkout_id: c for c in checkouts if c.user_id == user_id}
    by_id = {u.user_id: u for u in users}

    related = [i for i in interactions if i.checkout_id in mine]
    related.sort(key=lambda i: i.timestamp, reverse=True)

    return [
        {
            'interaction': i,
            'checkout': mine[i.checkout_id],
            'commenter': by_id.get(i.commenter_id),
        }
        for i in related[:limit]
    ]


def active_blockers(checkouts: List[DailyCheckout]) -> List[DailyCheckout]:
    """Check-ins that report a blocker, oldest first."""
    blocked = [c for c in checkouts if c.blocker_text]
    blocked.sort(key=lambda c: c.timestamp)
    return blocked


def feed(checkouts: List[DailyCheckout], interactions: List[Interaction]) -> List[Dict[str, Any]]:
    """Check-ins newest first, each with its kudos count and replies."""
    by_checkout: Dict[str, List[Interaction]] = {}
    for i in interactions:
        by_checkout.setdefault(i.checkout_id, []).append(i)

    entries = []
    for c in sorted(checkouts, key=lambda c: c.timestamp, reverse=True):
        related = by_checkout.get(c.checkout_id, [])
        replies = sorted((i for i in related if i.type == InteractionType.REPLY), key=lambda i: i.timestamp)
        entries.append({
            'checkout': c,
            'kudos': sum(1 for i in related if i.type == InteractionType.KUDOS),
            'replies': replies,
        })
    return entries


def has_given_kudos(interactions: List[Interaction], checkout_id: str, user_id: str) -> bool:
    return any(
        i.checkout_id == checkout_id and i.commenter_id == user_id and i.type == InteractionType.KUDOS
        for i in interactions
    )


def holidays_for(country: str, state: Optional[str] = None, years: Optional[List[int]] = None):
    """
    Holiday calendar for a country/subdivision.

    Unknown countries or subdivisions yield an empty calendar rather than an error.
    """
    try:
        return holidays.country_holidays(country, subdiv=state or None, years=years)
    except NotImplementedError as e:
        logger.warning("No holiday calendar for %s/%s: %s", country, state, e)
        return {}


def week_holidays(monday_iso: str, country: str, state: Optional[str] = None) -> Dict[str, str]:
    """
    Map the dates of a planner week that are public holidays to their names.

    Args:
        monday_iso: Monday of the week (YYYY-MM-DD)
        country: ISO country code, e.g. 'US'
        state: Optional subdivision code

    Returns:
        {'YYYY-MM-DD': 'Holiday name'} for holidays in that week
    """
    days = [date.fromisoformat(d) for d in week_days(monday_iso)]
    calendar = holidays_for(country, state, years=sorted({d.year for d in days}))
    return {d.isoformat(): calendar.get(d) for d in days if d in calendar}


def is_weekend(day_iso: str) -> bool:
    """Check if date is a weekend (Saturday or Sunday)."""
    return date.fromisoformat(day_iso).weekday() >= 5
