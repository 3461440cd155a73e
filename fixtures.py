"""
Local fixture data, used when no sheet endpoint is configured.
Rows are raw camelCase dicts so they go through the same ingestion path as live data.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from dates import snap_to_monday, to_local_iso


def _ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


INITIAL_USERS: List[Dict[str, Any]] = [
    {'userId': 'u1', 'name': 'Alice (Manager)', 'role': 'Manager',
     'avatar': 'https://picsum.photos/seed/alice/40/40'},
    {'userId': 'u2', 'name': 'Bob (Junior)', 'role': 'Employee',
     'avatar': 'https://picsum.photos/seed/bob/40/40'},
    {'userId': 'u3', 'name': 'Charlie (Junior)', 'role': 'Employee',
     'avatar': 'https://picsum.photos/seed/charlie/40/40'},
]


def build_fixture_payload(now: Optional[datetime] = None) -> Dict[str, List[Dict[str, Any]]]:
    """
    Build a demo payload anchored on the local calendar day of `now`.

    Args:
        now: Reference moment (defaults to the current local time)

    Returns:
        Payload shaped like the sheet endpoint's GET response
    """
    now = now or datetime.now()
    yesterday = now - timedelta(days=1)
    two_days_ago = now - timedelta(days=2)

    today_str = to_local_iso(now)
    yesterday_str = to_local_iso(yesterday)
    two_days_ago_str = to_local_iso(two_days_ago)
    next_week_str = to_local_iso(now + timedelta(days=7))
    this_week = snap_to_monday(today_str)

    checkouts = [
        {
            'checkoutId': 'c1', 'userId': 'u2', 'date': yesterday_str, 'vibeScore': 8,
            'winText': 'Fixed the login bug finally!', 'blockerText': '',
            'tomorrowGoalText': 'Start on the dashboard UI', 'timestamp': _ms(yesterday),
        },
        {
            'checkoutId': 'c2', 'userId': 'u3', 'date': yesterday_str, 'vibeScore': 4,
            'winText': 'Researched API endpoints',
            'blockerText': 'Waiting on backend documentation from the legacy team.',
            'tomorrowGoalText': 'Follow up with backend team', 'timestamp': _ms(yesterday) + 1000,
        },
        {
            'checkoutId': 'c3', 'userId': 'u2', 'date': two_days_ago_str, 'vibeScore': 7,
            'winText': 'Cleared the backlog', 'blockerText': '',
            'tomorrowGoalText': 'Fix login bug', 'timestamp': _ms(two_days_ago),
        },
    ]

    tasks = [
        {
            'taskId': 't1', 'userId': 'u2', 'taskDescription': 'Implement Login Flow',
            'weekOfDate': this_week, 'scheduledDate': yesterday_str,
            'estimatedPomodoros': 8, 'actualPomodoros': 6, 'status': 'Done',
        },
        {
            'taskId': 't2', 'userId': 'u2', 'taskDescription': 'Design Dashboard Components',
            'weekOfDate': this_week, 'scheduledDate': today_str,
            'estimatedPomodoros': 12, 'actualPomodoros': 4, 'status': 'To Do',
        },
        {
            'taskId': 't3', 'userId': 'u3', 'taskDescription': 'API Integration',
            'weekOfDate': this_week, 'scheduledDate': today_str,
            'estimatedPomodoros': 10, 'actualPomodoros': 2, 'status': 'To Do',
        },
    ]

    weekly_goals = [
        {
            'goalId': 'g1', 'userId': 'u2', 'weekOfDate': this_week,
            'startDate': today_str, 'endDate': next_week_str,
            'title': 'Ship the MVP Authentication',
            'definitionOfDone': 'Users can login, logout, and session persists.',
            'steps': '- Setup auth provider\n- Create Login UI\n- Connect session state\n- Add error handling',
            'priority': 'High', 'dependency': 'Backend API readiness',
            'status': 'Partially Completed', 'retroText': '',
        },
        {
            'goalId': 'g2', 'userId': 'u2', 'weekOfDate': this_week,
            'startDate': today_str, 'endDate': next_week_str,
            'title': 'Clean up technical debt',
            'definitionOfDone': 'Remove all unused imports and debug prints.',
            'steps': '- Run linter\n- Remove print statements',
            'priority': 'Low', 'status': 'Not Started',
        },
    ]

    interactions = [
        {
            'interactionId': 'i1', 'checkoutId': 'c1', 'commenterId': 'u1',
            'type': 'kudos', 'timestamp': _ms(yesterday) + 50000,
        },
        {
            'interactionId': 'i2', 'checkoutId': 'c2', 'commenterId': 'u1',
            'commentText': 'I can jump on a call with them if you need backup.',
            'type': 'reply', 'timestamp': _ms(yesterday) + 60000,
        },
    ]

    return {
        'users': [dict(u) for u in INITIAL_USERS],
        'checkouts': checkouts,
        'tasks': tasks,
        'interactions': interactions,
        'weeklyGoals': weekly_goals,
    }
