"""
Record ingestion for raw sheet payloads.
Resolves field aliases, normalizes dates, snaps week anchors to Monday and
deduplicates by identifier (last write wins).
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from dateutil import parser as date_parser

from dates import normalize_date, snap_to_monday
from models import (
    AppData,
    DailyCheckout,
    GoalStatus,
    Interaction,
    InteractionType,
    Priority,
    Task,
    TaskStatus,
    User,
    UserRole,
    WeeklyGoal,
)

logger = logging.getLogger(__name__)

R = TypeVar('R')

DEFAULT_AVATAR = 'https://api.dicebear.com/7.x/notionists/svg?seed={seed}'


def _aliases(*names: str) -> Tuple[str, ...]:
    """camelCase names plus their PascalCase spelling, camelCase first."""
    out: List[str] = []
    for name in names:
        for spelling in (name, name[:1].upper() + name[1:]):
            if spelling not in out:
                out.append(spelling)
    return tuple(out)


# Ordered accepted spellings per logical field, per record kind.
FIELD_ALIASES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    'users': {
        'user_id': _aliases('userId'),
        'name': _aliases('name'),
        'role': _aliases('role'),
        'avatar': _aliases('avatar'),
    },
    'checkouts': {
        'checkout_id': _aliases('checkoutId'),
        'user_id': _aliases('userId'),
        'date': _aliases('date'),
        'vibe_score': _aliases('vibeScore'),
        'win_text': _aliases('winText'),
        'blocker_text': _aliases('blockerText'),
        'tomorrow_goal_text': _aliases('tomorrowGoalText'),
        'timestamp': _aliases('timestamp'),
    },
    'tasks': {
        'task_id': _aliases('taskId'),
        'user_id': _aliases('userId'),
        'task_description': _aliases('taskDescription'),
        'week_of_date': _aliases('weekOfDate'),
        'scheduled_date': _aliases('scheduledDate'),
        'estimated_pomodoros': _aliases('estimatedPomodoros'),
        'actual_pomodoros': _aliases('actualPomodoros'),
        'status': _aliases('status'),
    },
    'interactions': {
        'interaction_id': _aliases('interactionId'),
        'checkout_id': _aliases('checkoutId'),
        'commenter_id': _aliases('commenterId'),
        'comment_text': _aliases('commentText'),
        'type': _aliases('type'),
        'timestamp': _aliases('timestamp'),
    },
    'weekly_goals': {
        'goal_id': _aliases('goalId'),
        'user_id': _aliases('userId'),
        'title': _aliases('title'),
        'week_of_date': _aliases('weekOfDate'),
        'start_date': _aliases('startDate'),
        'end_date': _aliases('endDate'),
        'definition_of_done': _aliases('definitionOfDone'),
        'steps': _aliases('steps'),
        'priority': _aliases('priority'),
        'dependency': _aliases('dependency'),
        'status': _aliases('status'),
        'retro_text': _aliases('retroText'),
    },
}

# Collection keys in the fetch response.
COLLECTION_ALIASES: Dict[str, Tuple[str, ...]] = {
    'users': _aliases('users'),
    'checkouts': _aliases('checkouts'),
    'tasks': _aliases('tasks'),
    'interactions': _aliases('interactions'),
    'weekly_goals': _aliases('weeklyGoals', 'goals'),
}

ID_PREFIXES = {
    'users': 'u',
    'checkouts': 'c',
    'tasks': 't',
    'interactions': 'i',
    'weekly_goals': 'g',
}


def resolve_field(raw: Mapping[str, Any], aliases: Sequence[str], default: Any = None) -> Any:
    """Return the first alias present in raw with a non-None value."""
    for name in aliases:
        value = raw.get(name)
        if value is not None:
            return value
    return default


def generate_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def _text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _to_int(value: Any, default: int = 0) -> int:
    """Lenient int coercion for sheet cells ('3', 3.0, '', None)."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return default


def _to_timestamp(value: Any) -> int:
    """Epoch milliseconds from a number, numeric string or date-time string."""
    if value is None or value == '':
        return 0
    if isinstance(value, datetime):
        moment = value
    else:
        number = _to_int(value, default=-1)
        if number >= 0:
            return number
        try:
            moment = date_parser.isoparse(str(value).strip())
        except (ValueError, OverflowError):
            return 0
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def _enum(enum_cls, value: Any, default):
    text = _text(value)
    for member in enum_cls:
        if member.value.lower() == text.lower():
            return member
    return default


def _fields(kind: str, raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        name: resolve_field(raw, aliases)
        for name, aliases in FIELD_ALIASES[kind].items()
    }


def week_anchor(anchor: Any, primary_date: str) -> str:
    """
    Monday of the record's week.

    Uses the stored anchor when it normalizes to a date, otherwise derives it
    from the record's primary date. Returns '' if neither is a date.
    """
    for candidate in (anchor, primary_date):
        canonical = normalize_date(candidate)
        if canonical:
            return snap_to_monday(canonical)
    return ''


def map_user(raw: Mapping[str, Any]) -> User:
    f = _fields('users', raw)
    name = _text(f['name'])
    return User(
        user_id=_text(f['user_id']),
        name=name,
        role=_enum(UserRole, f['role'], UserRole.EMPLOYEE),
        avatar=_text(f['avatar']) or DEFAULT_AVATAR.format(seed=name),
    )


def map_checkout(raw: Mapping[str, Any]) -> DailyCheckout:
    f = _fields('checkouts', raw)
    return DailyCheckout(
        checkout_id=_text(f['checkout_id']),
        user_id=_text(f['user_id']),
        date=normalize_date(f['date']),
        vibe_score=min(max(_to_int(f['vibe_score'], 5), 1), 10),
        win_text=_text(f['win_text']),
        blocker_text=_text(f['blocker_text']),
        tomorrow_goal_text=_text(f['tomorrow_goal_text']),
        timestamp=_to_timestamp(f['timestamp']),
    )


def map_task(raw: Mapping[str, Any]) -> Task:
    f = _fields('tasks', raw)
    scheduled = normalize_date(f['scheduled_date'])
    return Task(
        task_id=_text(f['task_id']),
        user_id=_text(f['user_id']),
        task_description=_text(f['task_description']),
        week_of_date=week_anchor(f['week_of_date'], scheduled),
        scheduled_date=scheduled,
        estimated_pomodoros=max(_to_int(f['estimated_pomodoros']), 0),
        actual_pomodoros=max(_to_int(f['actual_pomodoros']), 0),
        status=_enum(TaskStatus, f['status'], TaskStatus.TODO),
    )


def map_interaction(raw: Mapping[str, Any]) -> Interaction:
    f = _fields('interactions', raw)
    return Interaction(
        interaction_id=_text(f['interaction_id']),
        checkout_id=_text(f['checkout_id']),
        commenter_id=_text(f['commenter_id']),
        type=_enum(InteractionType, f['type'], InteractionType.KUDOS),
        comment_text=_text(f['comment_text']),
        timestamp=_to_timestamp(f['timestamp']),
    )


def map_goal(raw: Mapping[str, Any]) -> WeeklyGoal:
    f = _fields('weekly_goals', raw)
    start = normalize_date(f['start_date'])
    return WeeklyGoal(
        goal_id=_text(f['goal_id']),
        user_id=_text(f['user_id']),
        title=_text(f['title']),
        week_of_date=week_anchor(f['week_of_date'], start),
        start_date=start,
        end_date=normalize_date(f['end_date']),
        definition_of_done=_text(f['definition_of_done']),
        steps=_text(f['steps']),
        priority=_enum(Priority, f['priority'], Priority.MEDIUM),
        dependency=_text(f['dependency']),
        status=_enum(GoalStatus, f['status'], GoalStatus.NOT_STARTED),
        retro_text=_text(f['retro_text']),
    )


MAPPERS: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
    'users': map_user,
    'checkouts': map_checkout,
    'tasks': map_task,
    'interactions': map_interaction,
    'weekly_goals': map_goal,
}

ID_FIELDS = {
    'users': 'user_id',
    'checkouts': 'checkout_id',
    'tasks': 'task_id',
    'interactions': 'interaction_id',
    'weekly_goals': 'goal_id',
}


def dedupe(records: Iterable[R], key: str, prefix: str = 'r') -> List[R]:
    """
    Deduplicate records by identifier, keeping the last occurrence.

    Records without an identifier get a generated one first, so they are
    never dropped. The result is ordered by each identifier's last occurrence.

    Args:
        records: Records in the order the store returned them
        key: Name of the identifier attribute
        prefix: Prefix for generated identifiers

    Returns:
        Deduplicated list of records
    """
    latest: Dict[str, R] = {}
    for record in records:
        ident = getattr(record, key)
        if not ident:
            ident = generate_id(prefix)
            setattr(record, key, ident)
        latest.pop(ident, None)
        latest[ident] = record
    return list(latest.values())


def merge_local_writes(data: AppData, local: Mapping[str, Iterable[Any]]) -> AppData:
    """
    Overlay records written locally (optimistic updates) on fetched data.

    Local records come later in iteration order, so they win over fetched
    rows with the same identifier.
    """
    merged = {}
    for kind, key in ID_FIELDS.items():
        fetched = getattr(data, kind)
        merged[kind] = dedupe(list(fetched) + list(local.get(kind, [])), key, ID_PREFIXES[kind])
    return AppData(**merged)


def prune_local_writes(data: AppData, local: Mapping[str, Iterable[Any]]) -> Dict[str, List[Any]]:
    """
    Drop local records that fetched data already reflects.

    Local writes are compacted to one record per identifier, and a record is
    dropped once the fetched copy with the same identifier is identical, so
    later fetches take over again. Records still missing upstream (or whose
    upstream copy differs, e.g. a stale cache) are kept.

    Args:
        data: Freshly fetched AppData
        local: Locally written records per collection kind

    Returns:
        Remaining local records per collection kind
    """
    pruned: Dict[str, List[Any]] = {}
    for kind, key in ID_FIELDS.items():
        fetched = {getattr(r, key): r for r in getattr(data, kind)}
        kept = dedupe(list(local.get(kind, [])), key, ID_PREFIXES[kind])
        remaining = [r for r in kept if fetched.get(getattr(r, key)) != r]
        if remaining:
            pruned[kind] = remaining
    return pruned


def ingest_collection(kind: str, rows: Optional[Iterable[Any]]) -> List[Any]:
    """Map and deduplicate one collection of raw rows."""
    mapper = MAPPERS[kind]
    records = []
    for index, raw in enumerate(rows or []):
        if not isinstance(raw, Mapping):
            logger.warning("Skipping malformed %s row %d: %r", kind, index, raw)
            continue
        records.append(mapper(raw))
    return dedupe(records, ID_FIELDS[kind], ID_PREFIXES[kind])


def ingest_payload(payload: Mapping[str, Any]) -> AppData:
    """
    Map a full fetch response into typed, normalized AppData.

    Args:
        payload: Decoded JSON from the store, keyed by collection name

    Returns:
        AppData with every date field canonical and week anchors on Mondays
    """
    collections = {}
    for kind, aliases in COLLECTION_ALIASES.items():
        rows = resolve_field(payload, aliases, [])
        if not isinstance(rows, list):
            logger.warning("Collection %s is not a list (%s); ignoring it", kind, type(rows).__name__)
            rows = []
        collections[kind] = ingest_collection(kind, rows)

    data = AppData(**collections)
    logger.info(
        "Ingested %d users, %d checkouts, %d tasks, %d interactions, %d goals",
        len(data.users), len(data.checkouts), len(data.tasks),
        len(data.interactions), len(data.weekly_goals),
    )
    return data
