"""
Prompt construction for the inference tier.
"""
from datetime import datetime
from typing import List, Optional

from app.models.schemas import BehaviorSummary, User, Video, utcnow

SYSTEM_INSTRUCTION = (
    "You are an AI sports content recommendation expert. Analyze user behavior "
    "and recommend videos that will maximize engagement."
)

TITLE_MAX_CHARS = 60


def _candidate_line(video: Video) -> str:
    duration = (
        f"{video.duration_seconds}s"
        if video.duration_seconds is not None
        else "Unknown duration"
    )
    return (
        f"ID:{video.id} | {video.category} | {video.title[:TITLE_MAX_CHARS]} | "
        f"{duration} | Views:{video.view_count}"
    )


def build_recommendation_prompt(
    user: User,
    summary: BehaviorSummary,
    candidates: List[Video],
    count: int,
    now: Optional[datetime] = None,
) -> str:
    """Render the user profile, digest and candidate list as the user message."""
    now = now or utcnow()
    preferences = ", ".join(user.preferences) if user.preferences else "General sports"
    account_age_days = max((now - user.created_at).days, 0)

    lines = [
        "TASK: Recommend sports videos for user engagement",
        "",
        "USER PROFILE:",
        f"- User preferences: {preferences}",
        f"- Account age: {account_age_days} days",
        "",
        summary.to_prompt_text(),
        "AVAILABLE VIDEOS (select from these IDs):",
    ]
    lines.extend(_candidate_line(video) for video in candidates)
    lines.extend([
        "",
        "INSTRUCTIONS:",
        "1. Analyze the user's behavior patterns and preferences",
        f"2. Select {count} video IDs that will maximize user engagement",
        "3. Consider: completion rates, category preferences, video duration, and popularity",
        "4. Provide variety while respecting user preferences",
        "5. Return ONLY video IDs with confidence scores between 0.1 and 1.0",
        "Format: ID:score,ID:score,ID:score (example: 123:0.95,456:0.87,789:0.81)",
    ])
    return "\n".join(lines) + "\n"
