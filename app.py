"""
Streamlit web app for Daily Pulse.
Daily check-ins, team feed, pomodoro planner, weekly goals and dashboard.
"""

import logging
import time
from datetime import date
from typing import Any, List, Optional

import pandas as pd
import streamlit as st

# Import our modules
import calc
import coach
import db
from dates import format_date_friendly, shift_days, snap_to_monday, today_iso, week_days
from ingest import DEFAULT_AVATAR, merge_local_writes, prune_local_writes
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

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# Page configuration
st.set_page_config(
    page_title="The Daily Pulse",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded"
)

config = db.load_config()
store = db.SheetStore(config.api_url, timeout=config.request_timeout)

SHEET_FOR = {
    'users': 'Users',
    'checkouts': 'Checkouts',
    'tasks': 'Tasks',
    'interactions': 'Interactions',
    'weekly_goals': 'WeeklyGoals',
}


@st.cache_data(ttl=config.poll_seconds, show_spinner="Syncing with HQ...")
def fetch_app_data(api_url: str, timeout: float) -> AppData:
    return db.SheetStore(api_url, timeout=timeout).fetch_app_data()


def now_ms() -> int:
    return int(time.time() * 1000)


def load_data() -> AppData:
    """Fetched data (polled through the cache) with local writes layered on top."""
    fetched = fetch_app_data(config.api_url, config.request_timeout)
    st.session_state.local_writes = prune_local_writes(fetched, st.session_state.local_writes)
    return merge_local_writes(fetched, st.session_state.local_writes)


def save_record(kind: str, record: Any) -> None:
    """Optimistic update: keep the record locally, then append it to its sheet."""
    st.session_state.local_writes.setdefault(kind, []).append(record)
    store.sync_item(SHEET_FOR[kind], record.to_payload())


# --- Auth ---

def render_login(sb) -> None:
    st.title("Sign in")
    st.markdown("Check in daily, plan your pomodoros and keep the team in the loop.")
    with st.form("login"):
        email = st.text_input("Email", value="", autocomplete="username")
        password = st.text_input("Password", type="password", autocomplete="current-password")
        submitted = st.form_submit_button("Sign in")
    if submitted:
        try:
            res = sb.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            st.error(f"Login failed: {e}")
            return
        st.session_state["uid"] = res.user.id
        meta = getattr(res.user, "user_metadata", None) or {}
        user_email = getattr(res.user, "email", None) or ""
        name = meta.get("full_name") or meta.get("name") or user_email.split("@")[0] or "Teammate"
        st.session_state["display_name"] = name
        st.success("Signed in")
        st.rerun()


def ensure_signed_in_user(users: List[User]) -> None:
    """Map the signed-in account to a team member, creating one if needed."""
    uid = st.session_state.get("uid")
    if not uid:
        return
    if not any(u.user_id == uid for u in users):
        name = st.session_state.get("display_name", "Teammate")
        save_record('users', User(user_id=uid, name=name, role=UserRole.EMPLOYEE,
                                  avatar=DEFAULT_AVATAR.format(seed=name)))
    st.session_state.current_user_id = uid


# --- Sidebar ---

def render_sidebar(data: AppData, auth_client) -> User:
    """Render the user switcher, create-user form and sync controls."""
    st.sidebar.header("👤 Team Member")

    users = data.users
    ids = [u.user_id for u in users]
    by_id = {u.user_id: u for u in users}

    # The switcher widget owns current_user_id, so new users are selected on the next run
    pending = st.session_state.pop("pending_user_id", None)
    if pending in by_id:
        st.session_state.current_user_id = pending
    if st.session_state.current_user_id not in by_id:
        st.session_state.current_user_id = ids[1] if len(ids) > 1 else ids[0]

    if auth_client is None:
        st.sidebar.selectbox(
            "Viewing as",
            options=ids,
            format_func=lambda uid: by_id[uid].name,
            key="current_user_id",
        )

        with st.sidebar.expander("➕ Add new user"):
            with st.form("create_user", clear_on_submit=True):
                name = st.text_input("Full name", placeholder="e.g. Sarah Connor")
                role = st.radio("Role", [r.value for r in UserRole], index=1, horizontal=True)
                if st.form_submit_button("Create profile"):
                    if name.strip():
                        user = User(
                            user_id=f"u{now_ms()}",
                            name=name.strip(),
                            role=UserRole(role),
                            avatar=DEFAULT_AVATAR.format(seed=name.strip()),
                        )
                        save_record('users', user)
                        st.session_state["pending_user_id"] = user.user_id
                        st.rerun()
                    else:
                        st.warning("Please enter a name.")
    else:
        if st.sidebar.button("Sign out"):
            try:
                auth_client.auth.sign_out()
            except Exception as e:
                logger.warning("Sign out failed: %s", e)
            st.session_state.clear()
            st.rerun()

    current = by_id[st.session_state.current_user_id]
    st.sidebar.image(current.avatar, width=48)
    st.sidebar.markdown(f"**{current.name}** · {current.role.value}")

    st.sidebar.markdown("---")
    st.sidebar.header("🔄 Sync")
    if store.is_live:
        st.sidebar.caption(f"Live data, refreshed every {config.poll_seconds}s.")
    else:
        st.sidebar.caption("Using local demo data. Set PULSE_API_URL to go live.")
    if st.sidebar.button("Refresh now"):
        fetch_app_data.clear()
        st.rerun()

    return current


# --- Daily checkout ---

def render_checkout(current: User) -> None:
    st.subheader("📝 Daily Checkout")
    st.caption(f"Checking out for {format_date_friendly(today_iso())}")

    with st.form("checkout", clear_on_submit=True):
        vibe = st.slider("Vibe check (1-10)", min_value=1, max_value=10, value=5)
        win = st.text_area("⚡ Big win today", placeholder="What did you get done?")
        blocker = st.text_area("🛑 Blockers", placeholder="Anything in your way? Leave empty if not.")
        goal = st.text_input("🎯 Tomorrow's main goal")
        submitted = st.form_submit_button("Send checkout")

    if submitted:
        if not win.strip():
            st.warning("Share at least one win.")
            return
        checkout = DailyCheckout(
            checkout_id=f"c{now_ms()}",
            user_id=current.user_id,
            # Local calendar day; 8pm EST must not become tomorrow
            date=today_iso(),
            vibe_score=vibe,
            win_text=win.strip(),
            blocker_text=blocker.strip(),
            tomorrow_goal_text=goal.strip(),
            timestamp=now_ms(),
        )
        save_record('checkouts', checkout)
        st.success("Checkout sent! Great work today. See you tomorrow!")


# --- Team feed ---

def vibe_badge(score: int) -> str:
    if score >= 8:
        return f"🟢 Vibe: {score}"
    if score <= 4:
        return f"🔴 Vibe: {score}"
    return f"🟡 Vibe: {score}"


def render_feed(data: AppData, current: User) -> None:
    st.subheader("🍳 Open Kitchen Feed")
    by_id = {u.user_id: u for u in data.users}
    entries = calc.feed(data.checkouts, data.interactions)

    if not entries:
        st.info("No checkouts yet today. Be the first!")
        return

    for entry in entries:
        checkout = entry['checkout']
        author = by_id.get(checkout.user_id)
        if author is None:
            continue

        with st.container(border=True):
            head_l, head_r = st.columns([4, 1])
            with head_l:
                st.markdown(f"**{author.name}**  \n{format_date_friendly(checkout.date) or 'No date'}")
            with head_r:
                st.markdown(vibe_badge(checkout.vibe_score))

            st.markdown(f"**Big Win:** {checkout.win_text}")
            if checkout.blocker_text:
                st.error(f"**Blocker:** {checkout.blocker_text}")
            if checkout.tomorrow_goal_text:
                st.markdown(f"**Tomorrow:** {checkout.tomorrow_goal_text}")

            for reply in entry['replies']:
                commenter = by_id.get(reply.commenter_id)
                st.caption(f"💬 **{commenter.name if commenter else 'Someone'}:** {reply.comment_text}")

            given = calc.has_given_kudos(data.interactions, checkout.checkout_id, current.user_id)
            col_kudos, col_reply = st.columns([1, 4])
            with col_kudos:
                label = f"❤️ {entry['kudos']}" if given else f"🤍 {entry['kudos']}"
                if st.button(label, key=f"kudos-{checkout.checkout_id}", disabled=given):
                    save_record('interactions', Interaction(
                        interaction_id=f"i{now_ms()}",
                        checkout_id=checkout.checkout_id,
                        commenter_id=current.user_id,
                        type=InteractionType.KUDOS,
                        timestamp=now_ms(),
                    ))
                    st.rerun()
            with col_reply:
                with st.form(f"reply-{checkout.checkout_id}", clear_on_submit=True):
                    text = st.text_input("Reply", label_visibility="collapsed", placeholder="Write a reply...")
                    if st.form_submit_button("Reply") and text.strip():
                        save_record('interactions', Interaction(
                            interaction_id=f"i{now_ms()}",
                            checkout_id=checkout.checkout_id,
                            commenter_id=current.user_id,
                            type=InteractionType.REPLY,
                            comment_text=text.strip(),
                            timestamp=now_ms(),
                        ))
                        st.rerun()


# --- Planner ---

def render_date_nav(step_days: int) -> str:
    """Prev / today / next navigation over the selected date."""
    selected = st.session_state.selected_date
    nav_l, nav_c, nav_t, nav_r = st.columns([1, 3, 1, 1])
    with nav_l:
        if st.button("◀", key=f"prev-{step_days}"):
            st.session_state.selected_date = shift_days(selected, -step_days)
            st.rerun()
    with nav_c:
        picked = st.date_input("Date", value=date.fromisoformat(selected), label_visibility="collapsed")
        if picked and picked.isoformat() != selected:
            st.session_state.selected_date = picked.isoformat()
            st.rerun()
    with nav_t:
        if st.button("Today", key=f"today-{step_days}"):
            st.session_state.selected_date = today_iso()
            st.rerun()
    with nav_r:
        if st.button("▶", key=f"next-{step_days}"):
            st.session_state.selected_date = shift_days(selected, step_days)
            st.rerun()
    return st.session_state.selected_date


def render_task_row(task: Task) -> None:
    cols = st.columns([5, 1, 2, 1])
    with cols[0]:
        text = f"~~{task.task_description}~~" if task.status == TaskStatus.DONE else task.task_description
        st.markdown(text)
    with cols[1]:
        st.markdown(f"🍅 {task.actual_pomodoros}/{task.estimated_pomodoros}")
    with cols[2]:
        minus, plus = st.columns(2)
        if minus.button("−", key=f"pm-{task.task_id}", disabled=task.actual_pomodoros <= 0):
            task.actual_pomodoros = max(task.actual_pomodoros - 1, 0)
            save_record('tasks', task)
            st.rerun()
        if plus.button("+", key=f"pp-{task.task_id}"):
            task.actual_pomodoros += 1
            save_record('tasks', task)
            st.rerun()
    with cols[3]:
        label = "↩️" if task.status == TaskStatus.DONE else "✅"
        if st.button(label, key=f"done-{task.task_id}"):
            task.status = calc.next_task_status(task.status)
            save_record('tasks', task)
            st.rerun()


def render_today_view(data: AppData, current: User, selected: str, week_start: str) -> None:
    day_tasks = calc.tasks_for_day(data.tasks, current.user_id, selected, week_start)
    total = calc.daily_pomodoro_total(day_tasks)

    if calc.is_overworked(total):
        st.warning(
            f"You have planned **{total}** pomodoros for {format_date_friendly(selected)}. "
            f"More than {calc.OVERWORK_POMODORO_LIMIT} is a recipe for burnout."
        )
    else:
        st.caption(f"{total} / {calc.OVERWORK_POMODORO_LIMIT} pomodoros planned")

    with st.form("add_task", clear_on_submit=True):
        desc_col, est_col, btn_col = st.columns([4, 1, 1])
        desc = desc_col.text_input("Task", placeholder="What will you focus on?", label_visibility="collapsed")
        est = est_col.number_input("Est.", min_value=1, max_value=16, value=2, label_visibility="collapsed")
        if btn_col.form_submit_button("Add") and desc.strip():
            save_record('tasks', Task(
                task_id=f"t{now_ms()}",
                user_id=current.user_id,
                task_description=desc.strip(),
                week_of_date=week_start,
                scheduled_date=selected,
                estimated_pomodoros=int(est),
            ))
            st.rerun()

    if not day_tasks:
        st.info(f"No tasks planned for {format_date_friendly(selected)}.")
    for task in day_tasks:
        render_task_row(task)


def render_goal_card(goal: WeeklyGoal, key_prefix: str) -> None:
    """Goal card with status/retro editing. key_prefix keeps widget keys unique per tab."""
    key = f"{key_prefix}-{goal.goal_id}"
    with st.container(border=True):
        st.markdown(f"**{goal.title}** · `{goal.priority.value}`")
        if goal.start_date or goal.end_date:
            st.caption(f"{format_date_friendly(goal.start_date)} → {format_date_friendly(goal.end_date)}")
        if goal.definition_of_done:
            st.markdown(f"*Done when:* {goal.definition_of_done}")
        if goal.steps:
            st.markdown(goal.steps)
        if goal.dependency:
            st.caption(f"⚠️ Depends on: {goal.dependency}")

        statuses = [s.value for s in GoalStatus]
        new_status = st.selectbox(
            "Status", statuses, index=statuses.index(goal.status.value), key=f"gs-{key}"
        )
        retro = st.text_area("Weekly retro", value=goal.retro_text, key=f"gr-{key}")
        if new_status != goal.status.value or retro != goal.retro_text:
            if st.button("Save", key=f"gsave-{key}"):
                goal.status = GoalStatus(new_status)
                goal.retro_text = retro
                save_record('weekly_goals', goal)
                st.rerun()


def render_goal_form(current: User, key: str, week_start: Optional[str] = None) -> None:
    """Add a weekly goal; without week_start the goal carries its own date range."""
    with st.form(key, clear_on_submit=True):
        title = st.text_input("Goal title")
        dod = st.text_area("Definition of done")
        steps = st.text_area("Steps", placeholder="- one step per line")
        priority = st.selectbox("Priority", [p.value for p in Priority], index=1)
        dependency = st.text_input("Dependency")
        start = end = None
        if week_start is None:
            c1, c2 = st.columns(2)
            start = c1.date_input("Start date", value=date.fromisoformat(today_iso()))
            end = c2.date_input("End date", value=date.fromisoformat(shift_days(today_iso(), 7)))
        if st.form_submit_button("Add weekly goal"):
            if not title.strip():
                st.warning("A goal needs a title.")
                return
            start_iso = start.isoformat() if start else ''
            if week_start is None:
                week_start = snap_to_monday(start_iso) if start_iso else ''
            save_record('weekly_goals', WeeklyGoal(
                goal_id=f"g{now_ms()}",
                user_id=current.user_id,
                title=title.strip(),
                week_of_date=week_start,
                start_date=start_iso,
                end_date=end.isoformat() if end else '',
                definition_of_done=dod.strip(),
                steps=steps.strip(),
                priority=Priority(priority),
                dependency=dependency.strip(),
            ))
            st.rerun()


def render_week_view(data: AppData, current: User, week_start: str) -> None:
    holidays_this_week = calc.week_holidays(week_start, config.holiday_country, config.holiday_state)
    cols = st.columns(7)
    for col, day in zip(cols, week_days(week_start)):
        with col:
            label = format_date_friendly(day)
            if day in holidays_this_week:
                st.markdown(f"**{label}**  \n🎉 {holidays_this_week[day]}")
            elif calc.is_weekend(day):
                st.caption(label)
            else:
                st.markdown(f"**{label}**")

    st.markdown(f"#### Goals for the week of {format_date_friendly(week_start)}")
    goals = calc.goals_for_week(data.weekly_goals, current.user_id, week_start)
    if not goals:
        st.info("No goals set for this week.")
    for goal in goals:
        render_goal_card(goal, key_prefix="planner")

    with st.expander("➕ Set a goal for this week"):
        render_goal_form(current, f"week_goal_{week_start}", week_start=week_start)


def render_planner(data: AppData, current: User) -> None:
    st.subheader("🗓️ Planner")
    mode = st.radio("View", ["Today", "Weekly Goals"], horizontal=True, key="planner_mode")
    selected = render_date_nav(1 if mode == "Today" else 7)
    week_start = snap_to_monday(selected)

    if mode == "Today":
        st.markdown(f"#### Focusing on {format_date_friendly(selected)}")
        render_today_view(data, current, selected, week_start)
    else:
        render_week_view(data, current, week_start)


# --- Weekly goals ---

def render_weekly_goals(data: AppData, current: User) -> None:
    st.subheader("🚩 Weekly Goals")
    with st.expander("➕ Add weekly goal", expanded=False):
        render_goal_form(current, "goal_form")

    active, archived = calc.split_goals(data.weekly_goals, current.user_id)
    st.markdown("#### Active")
    if not active:
        st.info("No active goals.")
    for goal in active:
        render_goal_card(goal, key_prefix="goals")

    if archived and st.checkbox(f"Show archived ({len(archived)})"):
        for goal in archived:
            render_goal_card(goal, key_prefix="archive")


# --- Dashboard ---

def render_manager_view(data: AppData) -> None:
    st.markdown("### Manager Overview")
    by_id = {u.user_id: u for u in data.users}
    blockers = calc.active_blockers(data.checkouts)
    st.markdown("#### 🔥 Active Blockers")
    if not blockers:
        st.success("No active blockers reported.")
    for b in blockers:
        author = by_id.get(b.user_id)
        st.error(f"**{author.name if author else b.user_id}:** {b.blocker_text}  \n{b.date or 'No date'}")


def render_dashboard(data: AppData, current: User) -> None:
    st.subheader("📊 Performance Dashboard")
    if current.is_manager:
        st.caption("Admin view")

    user_checkouts = [c for c in data.checkouts if c.user_id == current.user_id]
    user_tasks = [t for t in data.tasks if t.user_id == current.user_id]

    if not current.is_manager or user_checkouts:
        summary = calc.compute_dashboard(current.user_id, data.checkouts, data.tasks)

        m1, m2, m3 = st.columns(3)
        m1.metric("Consistency Streak", f"{summary['streak']} days")
        m2.metric("Overworked Days", summary['overworked_days'],
                  help=f"Days with more than {calc.OVERWORK_POMODORO_LIMIT} pomodoros planned")
        with m3:
            st.markdown("**🧠 AI Coach**")
            insight_key = f"insight_{current.user_id}"
            if insight_key in st.session_state:
                st.info(st.session_state[insight_key])
            elif st.button("Get insight"):
                with st.spinner("Analyzing your vibes..."):
                    st.session_state[insight_key] = coach.get_coaching_insight(
                        user_checkouts, user_tasks, current.name,
                        api_key=config.openai_api_key, model=config.openai_model,
                    )
                st.rerun()

        st.markdown("#### Weekly Snapshot")
        s1, s2, s3 = st.columns(3)
        s1.metric("Goal Completion", f"{summary['completion_rate']}%",
                  help=f"{summary['completed_tasks']} done, {summary['missed_tasks']} missed")
        s2.metric("Deep Work", f"{summary['focus_pomodoros']} pomodoros",
                  help=f"Approx {summary['focus_minutes']} mins focused")
        s3.metric("Impact Score", f"{summary['impact_score']} pts")

        c1, c2 = st.columns(2)
        with c1:
            st.markdown("**Vibe Trend**")
            trend = calc.vibe_trend(data.checkouts, current.user_id)
            if trend:
                st.line_chart(pd.DataFrame(trend).set_index('date'), y='vibe')
            else:
                st.caption("No check-ins yet.")
        with c2:
            st.markdown("**Est. vs Actual Focus**")
            rows = calc.pomodoro_comparison(data.tasks, current.user_id)
            if rows:
                st.bar_chart(pd.DataFrame(rows).set_index('task'), stack=False)
            else:
                st.caption("No finished tasks yet.")

        st.markdown("#### Highlights & Kudos")
        items = calc.highlights(current.user_id, data.checkouts, data.interactions, data.users)
        if not items:
            st.caption("No highlights yet. Keep pushing!")
        for item in items:
            interaction = item['interaction']
            who = item['commenter'].name if item['commenter'] else 'Someone'
            if interaction.type == InteractionType.KUDOS:
                st.markdown(f"🏆 **{who}** gave you kudos!")
            else:
                st.markdown(f"💬 **{who}** replied to your check-in: *\"{interaction.comment_text}\"*")
            st.caption(f"On: {item['checkout'].win_text[:30]}...")

    if current.is_manager:
        st.markdown("---")
        render_manager_view(data)


def init_session_state() -> None:
    st.session_state.setdefault("local_writes", {})
    st.session_state.setdefault("current_user_id", "")
    st.session_state.setdefault("selected_date", today_iso())


def main():
    """Main application function."""
    init_session_state()

    auth_client = db.get_auth_client()
    if auth_client is not None and "uid" not in st.session_state:
        render_login(auth_client)
        st.stop()

    st.title("📈 The Daily Pulse")

    data = load_data()
    if not data.users:
        st.error("No team members found. Please check your PULSE_API_URL configuration.")
        st.stop()

    ensure_signed_in_user(data.users)
    data = load_data()
    current = render_sidebar(data, auth_client)

    tab_checkout, tab_feed, tab_planner, tab_goals, tab_dash = st.tabs(
        ["Daily Checkout", "Team Feed", "Planner", "Weekly Goals", "Dashboard"]
    )
    with tab_checkout:
        render_checkout(current)
    with tab_feed:
        render_feed(data, current)
    with tab_planner:
        render_planner(data, current)
    with tab_goals:
        render_weekly_goals(data, current)
    with tab_dash:
        render_dashboard(data, current)


if __name__ == "__main__":
    main()
