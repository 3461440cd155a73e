"""
AI coaching insight for the dashboard.
"""

import logging
from typing import List, Optional

from openai import OpenAI

from models import DailyCheckout, Task, TaskStatus

logger = logging.getLogger(__name__)

NO_KEY_MESSAGE = "Please configure your API Key to get AI coaching insights."
EMPTY_RESPONSE_MESSAGE = "Keep up the good work!"
FAILURE_MESSAGE = "Unable to generate insight at this moment. Focus on your top goal!"


def build_prompt(checkouts: List[DailyCheckout], tasks: List[Task], user_name: str) -> str:
    """Prompt built from the 5 most recent check-ins and the task tally."""
    recent = sorted(checkouts, key=lambda c: c.timestamp, reverse=True)[:5]
    blocker_history = '\n'.join(
        f"- Date: {c.date or 'unknown'}, Blocker: {c.blocker_text}"
        for c in recent if c.blocker_text
    )
    vibe_history = ', '.join(str(c.vibe_score) for c in recent)

    completed = sum(1 for t in tasks if t.status == TaskStatus.DONE)

    return (
        "You are a supportive, agile team coach.\n"
        f"Analyze the recent performance data for team member: {user_name}.\n\n"
        "Data:\n"
        f"- Recent Vibe Scores (1-10): [{vibe_history}]\n"
        "- Recent Blockers:\n"
        f"{blocker_history or 'None reported recently.'}\n"
        f"- Weekly Tasks: {completed} completed out of {len(tasks)} planned.\n\n"
        "Provide a concise, 2-sentence coaching insight or encouraging tip.\n"
        "If vibe is low, suggest a small win. If blockers are frequent, suggest a strategy to unblock.\n"
        "Keep it friendly and professional."
    )


def get_coaching_insight(checkouts: List[DailyCheckout], tasks: List[Task], user_name: str,
                         api_key: str = '', model: str = 'gpt-4o-mini',
                         client: Optional[OpenAI] = None) -> str:
    """
    Ask the model for a short coaching tip.

    Args:
        checkouts: The user's check-ins
        tasks: The user's tasks
        user_name: Display name used in the prompt
        api_key: OpenAI key; without one a fixed hint is returned
        model: Chat model name
        client: Pre-built client (mainly for tests)

    Returns:
        Insight text. Failures are logged and replaced by a fixed message.
    """
    if not api_key and client is None:
        return NO_KEY_MESSAGE

    prompt = build_prompt(checkouts, tasks, user_name)
    try:
        client = client or OpenAI(api_key=api_key)
        resp = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.7,
        )
        content = (resp.choices[0].message.content or '').strip()
    except Exception as e:
        logger.error("Coaching insight request failed: %s", e)
        return FAILURE_MESSAGE

    return content or EMPTY_RESPONSE_MESSAGE
