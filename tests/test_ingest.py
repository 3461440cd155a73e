from datetime import datetime, timezone

from ingest import (
    FIELD_ALIASES,
    dedupe,
    ingest_collection,
    ingest_payload,
    map_checkout,
    map_goal,
    map_task,
    map_user,
    merge_local_writes,
    prune_local_writes,
    resolve_field,
    week_anchor,
)
from models import AppData, GoalStatus, Priority, Task, TaskStatus, UserRole


def test_end_to_end_pivot_only_applies_to_time_bearing_dates():
    data = ingest_payload({
        'checkouts': [
            {'date': '2024-06-10T22:15:00.000Z'},
            {'date': '2024-06-10'},
        ]
    })

    assert [c.date for c in data.checkouts] == ['2024-06-11', '2024-06-10']
    ids = [c.checkout_id for c in data.checkouts]
    assert len(set(ids)) == 2
    assert all(i.startswith('c') for i in ids)


def test_pascal_case_fields_and_collections_are_accepted():
    data = ingest_payload({
        'Checkouts': [{
            'CheckoutId': 'c1', 'UserId': 'u2', 'Date': '13/02/2024',
            'VibeScore': '8', 'WinText': 'Shipped', 'BlockerText': None,
        }]
    })

    checkout = data.checkouts[0]
    assert checkout.checkout_id == 'c1'
    assert checkout.user_id == 'u2'
    assert checkout.date == '2024-02-13'
    assert checkout.vibe_score == 8
    assert checkout.win_text == 'Shipped'
    assert checkout.blocker_text == ''


def test_resolve_field_prefers_first_alias_with_a_value():
    aliases = FIELD_ALIASES['tasks']['week_of_date']
    assert aliases == ('weekOfDate', 'WeekOfDate')
    assert resolve_field({'weekOfDate': 'a', 'WeekOfDate': 'b'}, aliases) == 'a'
    assert resolve_field({'weekOfDate': None, 'WeekOfDate': 'b'}, aliases) == 'b'
    assert resolve_field({}, aliases, 'default') == 'default'


def test_dedupe_keeps_last_occurrence():
    rows = [
        {'taskId': 't1', 'taskDescription': 'first', 'actualPomodoros': 1},
        {'taskId': 't2', 'taskDescription': 'other'},
        {'taskId': 't1', 'taskDescription': 'first', 'actualPomodoros': 5, 'status': 'Done'},
    ]
    tasks = ingest_collection('tasks', rows)

    assert [t.task_id for t in tasks] == ['t2', 't1']
    assert tasks[1].actual_pomodoros == 5
    assert tasks[1].status == TaskStatus.DONE


def test_dedupe_assigns_ids_instead_of_dropping():
    records = [Task(task_id='', user_id='u1', task_description='a'),
               Task(task_id='', user_id='u1', task_description='b')]
    result = dedupe(records, 'task_id', 't')

    assert len(result) == 2
    assert all(r.task_id.startswith('t') and len(r.task_id) == 13 for r in result)


def test_task_week_anchor_is_snapped_to_monday():
    task = map_task({'taskId': 't1', 'weekOfDate': '2024-03-06T23:00:00.000Z'})
    assert task.week_of_date == '2024-03-04'

    # Sunday stays in the week that started the Monday before
    task = map_task({'taskId': 't2', 'weekOfDate': '2024-03-10'})
    assert task.week_of_date == '2024-03-04'


def test_week_anchor_falls_back_to_primary_date():
    task = map_task({'taskId': 't1', 'weekOfDate': '', 'scheduledDate': '2024-03-10'})
    assert task.scheduled_date == '2024-03-10'
    assert task.week_of_date == '2024-03-04'

    goal = map_goal({'goalId': 'g1', 'title': 'x', 'startDate': '2024-09-01'})
    assert goal.week_of_date == '2024-08-26'


def test_week_anchor_empty_when_nothing_is_a_date():
    assert week_anchor('not a date', '') == ''
    task = map_task({'taskId': 't1', 'weekOfDate': 'soon'})
    assert task.week_of_date == ''
    assert task.scheduled_date == ''


def test_malformed_rows_are_skipped(caplog):
    tasks = ingest_collection('tasks', ['oops', None, {'taskId': 't1'}])
    assert [t.task_id for t in tasks] == ['t1']
    assert 'Skipping malformed tasks row 0' in caplog.text


def test_non_list_collection_is_ignored():
    data = ingest_payload({'tasks': 'nope', 'users': [{'userId': 'u1', 'name': 'Ann'}]})
    assert data.tasks == []
    assert [u.user_id for u in data.users] == ['u1']


def test_numeric_and_timestamp_coercion():
    iso_ms = int(datetime(2024, 3, 4, tzinfo=timezone.utc).timestamp() * 1000)

    checkout = map_checkout({'checkoutId': 'c1', 'vibeScore': 42, 'timestamp': '1700000000000'})
    assert checkout.vibe_score == 10
    assert checkout.timestamp == 1700000000000

    checkout = map_checkout({'checkoutId': 'c2', 'vibeScore': '', 'timestamp': '2024-03-04T00:00:00Z'})
    assert checkout.vibe_score == 5
    assert checkout.timestamp == iso_ms

    task = map_task({'taskId': 't1', 'estimatedPomodoros': 3.0, 'actualPomodoros': '-2'})
    assert task.estimated_pomodoros == 3
    assert task.actual_pomodoros == 0


def test_enums_are_matched_leniently():
    assert map_task({'taskId': 't1', 'status': 'done'}).status == TaskStatus.DONE
    assert map_task({'taskId': 't1', 'status': '???'}).status == TaskStatus.TODO

    goal = map_goal({'goalId': 'g1', 'title': 'x', 'priority': 'high', 'status': 'completed'})
    assert goal.priority == Priority.HIGH
    assert goal.status == GoalStatus.COMPLETED


def test_user_defaults():
    user = map_user({'UserId': 'u9', 'Name': 'Dana', 'Role': 'Manager'})
    assert user.role == UserRole.MANAGER
    assert user.is_manager
    assert 'seed=Dana' in user.avatar


def test_goal_dates_are_normalized():
    goal = map_goal({
        'goalId': 'g1', 'title': 'Ship', 'weekOfDate': '/Date(1709510400000)/',
        'startDate': 'Mon Mar 04 2024 00:00:00 GMT+0100 (CET)', 'endDate': '11/03/2024',
    })
    assert goal.week_of_date == '2024-03-04'
    assert goal.start_date == '2024-03-04'
    assert goal.end_date == '2024-03-11'


def test_payload_reingests_to_same_record():
    task = map_task({'taskId': 't1', 'userId': 'u1', 'taskDescription': 'Write',
                     'weekOfDate': '2024-03-04', 'scheduledDate': '2024-03-05',
                     'estimatedPomodoros': 4, 'actualPomodoros': 1, 'status': 'Done'})
    payload = task.to_payload()

    assert payload['taskId'] == 't1'
    assert payload['status'] == 'Done'
    assert map_task(payload) == task


def test_merge_local_writes_overrides_fetched():
    fetched = AppData(tasks=[
        Task(task_id='t1', user_id='u1', task_description='a', actual_pomodoros=1),
        Task(task_id='t2', user_id='u1', task_description='b'),
    ])
    local = {'tasks': [Task(task_id='t1', user_id='u1', task_description='a', actual_pomodoros=3)]}

    merged = merge_local_writes(fetched, local)

    assert {t.task_id: t.actual_pomodoros for t in merged.tasks} == {'t1': 3, 't2': 0}
    assert merged.users == []


def test_prune_local_writes_drops_records_the_fetch_reflects():
    synced = Task(task_id='t1', user_id='u1', task_description='a', actual_pomodoros=3)
    pending = Task(task_id='t2', user_id='u1', task_description='b', actual_pomodoros=2)
    fetched = AppData(tasks=[
        Task(task_id='t1', user_id='u1', task_description='a', actual_pomodoros=3),
        Task(task_id='t2', user_id='u1', task_description='b', actual_pomodoros=0),
    ])
    local = {'tasks': [synced, pending, pending]}

    remaining = prune_local_writes(fetched, local)

    assert remaining == {'tasks': [pending]}
    assert prune_local_writes(AppData(tasks=[pending]), remaining) == {}
