"""
Study Recommendations

Rule-based recommendations built from progress data. Every rule is
evaluated independently; none suppresses another.
"""

from typing import List

from app.schemas.analytics import (
    Priority,
    ProgressData,
    Recommendation,
    RecommendationType,
    Trend,
)
from app.services.analytics_store import AnalyticsStore
from app.services.progress_tracker import calculate_progress_data
from app.utils.stats import mean

LOW_SUBJECT_ACCURACY = 60
LOW_RECENT_ACCURACY = 70
LOW_CONSISTENCY = 60
RECENT_TESTS = 3


def _weak_area_recommendation(progress: ProgressData) -> List[Recommendation]:
    if not progress.consistent_weak_areas:
        return []
    return [Recommendation(
        type=RecommendationType.TOPIC,
        priority=Priority.HIGH,
        title="Focus on Consistent Weak Areas",
        description=f"You've consistently struggled with: {', '.join(progress.consistent_weak_areas)}",
        action_items=[
            "Review fundamental concepts in these topics",
            "Practice 10-15 questions daily on these topics",
            "Watch tutorial videos or read study materials",
            "Take topic-specific practice tests",
        ],
    )]


def _subject_recommendations(progress: ProgressData) -> List[Recommendation]:
    recommendations = []
    for subject in progress.subject_progress:
        name = subject.subject.capitalize()
        if subject.average_accuracy < LOW_SUBJECT_ACCURACY:
            recommendations.append(Recommendation(
                type=RecommendationType.SUBJECT,
                priority=Priority.HIGH,
                title=f"Improve {name} Performance",
                description=f"Your average accuracy in {subject.subject} is {subject.average_accuracy:.1f}%",
                action_items=[
                    f"Dedicate 30-45 minutes daily to {subject.subject}",
                    "Focus on understanding concepts rather than memorization",
                    "Solve previous year questions",
                    "Identify and practice weak topics",
                ],
            ))
        elif subject.trend == Trend.DECLINING:
            recommendations.append(Recommendation(
                type=RecommendationType.SUBJECT,
                priority=Priority.MEDIUM,
                title=f"Maintain {name} Performance",
                description=f"Your {subject.subject} performance is declining",
                action_items=[
                    "Review recent mistakes and understand why",
                    "Revisit fundamental concepts",
                    "Take regular practice tests",
                ],
            ))
    return recommendations


def _strategy_recommendations(progress: ProgressData) -> List[Recommendation]:
    recommendations = []

    recent = progress.test_history[-RECENT_TESTS:]
    if recent and mean([t.accuracy_percentage for t in recent]) < LOW_RECENT_ACCURACY:
        recommendations.append(Recommendation(
            type=RecommendationType.STRATEGY,
            priority=Priority.MEDIUM,
            title="Improve Test-Taking Strategy",
            description="Your recent test performance suggests room for improvement",
            action_items=[
                "Attempt easier questions first to build confidence",
                "Skip difficult questions and return later",
                "Practice time-bound mock tests regularly",
                "Review all questions after each test",
            ],
        ))

    if progress.overall_progress.consistency_score < LOW_CONSISTENCY:
        recommendations.append(Recommendation(
            type=RecommendationType.STRATEGY,
            priority=Priority.MEDIUM,
            title="Improve Consistency",
            description="Your performance varies significantly between tests",
            action_items=[
                "Maintain a regular study schedule",
                "Take tests at the same time of day",
                "Ensure adequate rest before tests",
                "Practice stress management techniques",
            ],
        ))

    return recommendations


def _progress_recommendation(progress: ProgressData) -> List[Recommendation]:
    if not progress.improvement_areas:
        return []
    return [Recommendation(
        type=RecommendationType.TOPIC,
        priority=Priority.LOW,
        title="Great Progress!",
        description=f"You've improved in: {', '.join(progress.improvement_areas)}",
        action_items=[
            "Continue your current study approach for these topics",
            "Help others or teach these concepts to reinforce learning",
            "Apply similar strategies to other weak areas",
        ],
    )]


def build_recommendations(progress: ProgressData) -> List[Recommendation]:
    return (
        _weak_area_recommendation(progress)
        + _subject_recommendations(progress)
        + _strategy_recommendations(progress)
        + _progress_recommendation(progress)
    )


def generate_recommendations(store: AnalyticsStore, user_id: str) -> List[Recommendation]:
    return build_recommendations(calculate_progress_data(store, user_id))
