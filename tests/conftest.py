"""
Shared test fixtures for the Daily Pulse test suite.
"""

import sys
from pathlib import Path
from typing import List

import pytest

# Add parent to path for module imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import (  # noqa: E402
    DailyCheckout,
    GoalStatus,
    Interaction,
    InteractionType,
    Task,
    TaskStatus,
    User,
    UserRole,
    WeeklyGoal,
)


@pytest.fixture
def users() -> List[User]:
    return [
        User(user_id='u1', name='Alice', role=UserRole.MANAGER),
        User(user_id='u2', name='Bob'),
        User(user_id='u3', name='Charlie'),
    ]


@pytest.fixture
def checkouts() -> List[DailyCheckout]:
    return [
        DailyCheckout(checkout_id='c1', user_id='u2', date='2024-03-04', vibe_score=8,
                      win_text='Fixed the login bug', timestamp=1000),
        DailyCheckout(checkout_id='c2', user_id='u3', date='2024-03-04', vibe_score=4,
                      win_text='Researched API endpoints',
                      blocker_text='Waiting on backend docs', timestamp=2000),
        DailyCheckout(checkout_id='c3', user_id='u2', date='2024-03-05', vibe_score=6,
                      win_text='Cleared the backlog', timestamp=3000),
        DailyCheckout(checkout_id='c4', user_id='u2', date='2024-03-05', vibe_score=7,
                      win_text='Second check-in same day', timestamp=4000),
        DailyCheckout(checkout_id='c5', user_id='u2', date='', vibe_score=3,
                      win_text='Undated row', timestamp=500),
    ]


@pytest.fixture
def tasks() -> List[Task]:
    return [
        Task(task_id='t1', user_id='u2', task_description='Implement Login Flow',
             week_of_date='2024-03-04', scheduled_date='2024-03-04',
             estimated_pomodoros=8, actual_pomodoros=6, status=TaskStatus.DONE),
        Task(task_id='t2', user_id='u2', task_description='Design Dashboard',
             week_of_date='2024-03-04', scheduled_date='2024-03-05',
             estimated_pomodoros=12, actual_pomodoros=4),
        Task(task_id='t3', user_id='u2', task_description='Write docs',
             week_of_date='2024-03-04', scheduled_date='2024-03-05',
             estimated_pomodoros=6, actual_pomodoros=0),
        Task(task_id='t4', user_id='u2', task_description='Legacy weekly task',
             week_of_date='2024-03-04', estimated_pomodoros=2),
        Task(task_id='t5', user_id='u3', task_description='API Integration',
             week_of_date='2024-03-04', scheduled_date='2024-03-05',
             estimated_pomodoros=10, actual_pomodoros=2),
    ]


@pytest.fixture
def interactions() -> List[Interaction]:
    return [
        Interaction(interaction_id='i1', checkout_id='c1', commenter_id='u1',
                    type=InteractionType.KUDOS, timestamp=5000),
        Interaction(interaction_id='i2', checkout_id='c2', commenter_id='u1',
                    type=InteractionType.REPLY, comment_text='Happy to help', timestamp=6000),
        Interaction(interaction_id='i3', checkout_id='c3', commenter_id='u3',
                    type=InteractionType.REPLY, comment_text='Nice one', timestamp=7000),
        Interaction(interaction_id='i4', checkout_id='c1', commenter_id='u3',
                    type=InteractionType.KUDOS, timestamp=8000),
    ]


@pytest.fixture
def goals() -> List[WeeklyGoal]:
    return [
        WeeklyGoal(goal_id='g1', user_id='u2', title='Ship auth', week_of_date='2024-03-04',
                   start_date='2024-03-04', status=GoalStatus.PARTIALLY_COMPLETED),
        WeeklyGoal(goal_id='g2', user_id='u2', title='Tech debt', week_of_date='2024-03-04',
                   start_date='2024-03-06'),
        WeeklyGoal(goal_id='g3', user_id='u2', title='Old goal', week_of_date='2024-02-26',
                   start_date='2024-02-26', status=GoalStatus.IN_PROGRESS),
        WeeklyGoal(goal_id='g4', user_id='u3', title='Someone else', week_of_date='2024-03-04',
                   start_date='2024-03-04'),
    ]
