"""
Typed record shapes for the Daily Pulse collections.
Field names are snake_case in Python; to_payload() gives the sheet's camelCase columns.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List


class UserRole(str, Enum):
    MANAGER = 'Manager'
    EMPLOYEE = 'Employee'


class TaskStatus(str, Enum):
    TODO = 'To Do'
    DONE = 'Done'


class InteractionType(str, Enum):
    KUDOS = 'kudos'
    REPLY = 'reply'


class GoalStatus(str, Enum):
    NOT_STARTED = 'Not Started'
    IN_PROGRESS = 'In Progress'
    PARTIALLY_COMPLETED = 'Partially Completed'
    COMPLETED = 'Completed'


class Priority(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


class _Record:
    """Mixin giving records the sheet's column naming on the way out."""

    def to_payload(self) -> Dict[str, Any]:
        payload = {}
        for key, value in asdict(self).items():
            if isinstance(value, Enum):
                value = value.value
            payload[_camel(key)] = value
        return payload


@dataclass
class User(_Record):
    user_id: str
    name: str
    role: UserRole = UserRole.EMPLOYEE
    avatar: str = ''

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER


@dataclass
class DailyCheckout(_Record):
    checkout_id: str
    user_id: str
    date: str  # canonical YYYY-MM-DD or ''
    vibe_score: int = 5  # 1-10
    win_text: str = ''
    blocker_text: str = ''
    tomorrow_goal_text: str = ''
    timestamp: int = 0  # epoch ms


@dataclass
class Task(_Record):
    task_id: str
    user_id: str
    task_description: str
    week_of_date: str = ''  # Monday anchor or ''
    scheduled_date: str = ''
    estimated_pomodoros: int = 0
    actual_pomodoros: int = 0
    status: TaskStatus = TaskStatus.TODO


@dataclass
class Interaction(_Record):
    interaction_id: str
    checkout_id: str
    commenter_id: str
    type: InteractionType = InteractionType.KUDOS
    comment_text: str = ''
    timestamp: int = 0


@dataclass
class WeeklyGoal(_Record):
    goal_id: str
    user_id: str
    title: str
    week_of_date: str = ''  # Monday anchor or ''
    start_date: str = ''
    end_date: str = ''
    definition_of_done: str = ''
    steps: str = ''
    priority: Priority = Priority.MEDIUM
    dependency: str = ''
    status: GoalStatus = GoalStatus.NOT_STARTED
    retro_text: str = ''


@dataclass
class AppData:
    users: List[User] = field(default_factory=list)
    checkouts: List[DailyCheckout] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    interactions: List[Interaction] = field(default_factory=list)
    weekly_goals: List[WeeklyGoal] = field(default_factory=list)
