"""
Performance Metrics Calculator

Turns one test session's raw answers into performance metrics:
1. Accuracy and time totals
2. Subject-wise analysis with a topic breakdown and strengths/weaknesses
3. Time-management buckets (fast < 60s, normal 60-120s, slow > 120s)
4. Thinking-ability assessment (speed x correctness)

Persistence is a separate, explicit step (calculate_and_store_metrics).
Stored rows are appended, never upserted: recalculating a session adds a
second set of rows.

Usage:
    from app.services.analytics_store import AnalyticsStore
    from app.services.performance_metrics import calculate_performance_metrics

    metrics = calculate_performance_metrics(AnalyticsStore(db), session_id)
"""

import logging
import os
import time
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Tuple

from app.errors import NotFoundError
from app.models.models import generate_uuid
from app.schemas.analytics import (
    SUBJECTS,
    AnswerRecord,
    PerformanceMetrics,
    QuestionRecord,
    SubjectAnalysis,
    SubjectMetricsRecord,
    TestSessionRecord,
    ThinkingAbilityAssessment,
    TimeManagementAnalysis,
    TopicPerformance,
)
from app.services.analytics_store import AnalyticsStore

logger = logging.getLogger(__name__)

# SLA for a single calculation, in milliseconds. Exceeding it is only logged.
CALCULATION_SLA_MS = int(os.getenv("ANALYTICS_CALCULATION_TIMEOUT", "30000"))

# Time buckets (seconds)
FAST_THRESHOLD = 60
SLOW_THRESHOLD = 120
IMPULSIVE_THRESHOLD = 30

# Topic classification (accuracy %)
STRENGTH_THRESHOLD = 80
WEAKNESS_THRESHOLD = 50
CONSISTENT_SUBJECT_ACCURACY = 70

GENERIC_STRENGTH = "Consistent performance across topics"
GENERIC_WEAKNESS = "Needs improvement across all topics"


def _ratio_percent(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


# =============================================================================
# SUBJECT ANALYSIS
# =============================================================================

def calculate_topic_breakdown(
    questions: List[QuestionRecord],
    answers_by_question: Dict[str, AnswerRecord]
) -> List[TopicPerformance]:
    """Group questions by topic (first-seen order) and count corrects per topic."""
    topics: "OrderedDict[str, List[int]]" = OrderedDict()

    for question in questions:
        stats = topics.setdefault(question.metadata.topic, [0, 0])
        stats[0] += 1
        answer = answers_by_question.get(question.id)
        if answer and answer.is_answered and answer.is_correct:
            stats[1] += 1

    return [
        TopicPerformance(
            topic=topic,
            total_questions=total,
            correct_answers=correct,
            accuracy_percentage=_ratio_percent(correct, total),
        )
        for topic, (total, correct) in topics.items()
    ]


def identify_strengths_and_weaknesses(
    topic_breakdown: List[TopicPerformance],
    overall_accuracy: float
) -> Tuple[List[str], List[str]]:
    """
    Topics at >= 80% are strengths, below 50% weaknesses.

    When no topic qualifies, fall back to a generic strength (subject
    accuracy >= 70%) or a generic weakness (subject accuracy < 50%).
    """
    strengths = [t.topic for t in topic_breakdown if t.accuracy_percentage >= STRENGTH_THRESHOLD]
    weaknesses = [t.topic for t in topic_breakdown if t.accuracy_percentage < WEAKNESS_THRESHOLD]

    if not strengths and overall_accuracy >= CONSISTENT_SUBJECT_ACCURACY:
        strengths.append(GENERIC_STRENGTH)

    if not weaknesses and overall_accuracy < WEAKNESS_THRESHOLD:
        weaknesses.append(GENERIC_WEAKNESS)

    return strengths, weaknesses


def calculate_subject_wise_analysis(
    questions: List[QuestionRecord],
    answers: List[AnswerRecord]
) -> List[SubjectAnalysis]:
    answers_by_question = {a.question_id: a for a in answers}
    analysis = []

    for subject in SUBJECTS:
        subject_questions = [q for q in questions if q.subject == subject]
        subject_answers = [
            answers_by_question[q.id] for q in subject_questions if q.id in answers_by_question
        ]

        answered = [a for a in subject_answers if a.is_answered]
        correct = sum(1 for a in answered if a.is_correct)
        accuracy = _ratio_percent(correct, len(answered))

        total_time = sum(a.time_spent_seconds for a in subject_answers)
        average_time = total_time / len(answered) if answered else 0.0

        topic_breakdown = calculate_topic_breakdown(subject_questions, answers_by_question)
        strengths, weaknesses = identify_strengths_and_weaknesses(topic_breakdown, accuracy)

        analysis.append(SubjectAnalysis(
            subject=subject,
            total_questions=len(subject_questions),
            correct_answers=correct,
            accuracy_percentage=accuracy,
            average_time_per_question=average_time,
            strengths=strengths,
            weaknesses=weaknesses,
            topic_breakdown=topic_breakdown,
        ))

    return analysis


# =============================================================================
# TIME MANAGEMENT
# =============================================================================

def calculate_time_management_analysis(
    questions: List[QuestionRecord],
    answers: List[AnswerRecord]
) -> TimeManagementAnalysis:
    subject_by_question = {q.id: q.subject.value for q in questions}
    time_distribution: Dict[str, float] = {subject: 0 for subject in SUBJECTS}

    fast = normal = slow = 0
    fast_correct = 0
    answered = [a for a in answers if a.is_answered]

    for answer in answered:
        spent = answer.time_spent_seconds
        if spent < FAST_THRESHOLD:
            fast += 1
            if answer.is_correct:
                fast_correct += 1
        elif spent <= SLOW_THRESHOLD:
            normal += 1
        else:
            slow += 1

        subject = subject_by_question.get(answer.question_id)
        if subject in time_distribution:
            time_distribution[subject] += spent

    suggestions = []
    answered_count = len(answered)

    if slow > answered_count * 0.3:
        suggestions.append(
            "Consider practicing time management - too many questions taking over 2 minutes"
        )

    if fast > answered_count * 0.5:
        fast_accuracy = fast_correct / fast if fast > 0 else 0
        if fast_accuracy < 0.7:
            suggestions.append(
                "Slow down and read questions carefully - rushing may lead to errors"
            )

    total_time = sum(time_distribution.values())
    for subject, spent in time_distribution.items():
        share = _ratio_percent(spent, total_time)
        if share > 40:
            suggestions.append(
                f"{subject.capitalize()} is taking {share:.0f}% of your time - consider practicing for speed"
            )

    return TimeManagementAnalysis(
        fast_questions=fast,
        normal_questions=normal,
        slow_questions=slow,
        time_distribution=time_distribution,
        suggestions=suggestions,
    )


# =============================================================================
# THINKING ABILITY
# =============================================================================

def calculate_thinking_ability_assessment(answers: List[AnswerRecord]) -> ThinkingAbilityAssessment:
    quick_correct = thoughtful_correct = slow_correct = 0
    impulsive_errors = confusion_errors = 0

    answered = [a for a in answers if a.is_answered]
    for answer in answered:
        spent = answer.time_spent_seconds
        if answer.is_correct:
            if spent < FAST_THRESHOLD:
                quick_correct += 1
            elif spent <= SLOW_THRESHOLD:
                thoughtful_correct += 1
            else:
                slow_correct += 1
        elif spent < IMPULSIVE_THRESHOLD:
            impulsive_errors += 1
        elif spent > SLOW_THRESHOLD:
            confusion_errors += 1

    total = len(answered)
    total_correct = quick_correct + thoughtful_correct + slow_correct
    confidence = _ratio_percent(total_correct, total)

    if impulsive_errors > total * 0.2:
        confidence -= 10
    if confusion_errors > total * 0.15:
        confidence -= 15
    if quick_correct > total * 0.3:
        confidence += 5
    confidence = max(0.0, min(100.0, confidence))

    insights = []
    if quick_correct > total * 0.4:
        insights.append("Strong conceptual clarity - able to answer quickly")
    if thoughtful_correct > total * 0.5:
        insights.append("Good analytical thinking - taking appropriate time")
    if impulsive_errors > total * 0.2:
        insights.append("Reduce impulsive answering - take time to read questions carefully")
    if confusion_errors > total * 0.15:
        insights.append("Some conceptual gaps - review topics where you spent more time but got wrong")
    if slow_correct > total * 0.3:
        insights.append("Practice for speed - you understand concepts but need to improve efficiency")

    return ThinkingAbilityAssessment(
        quick_correct_answers=quick_correct,
        thoughtful_correct_answers=thoughtful_correct,
        slow_correct_answers=slow_correct,
        impulsive_errors=impulsive_errors,
        confusion_errors=confusion_errors,
        confidence_score=confidence,
        insights=insights,
    )


# =============================================================================
# SESSION METRICS
# =============================================================================

def build_performance_metrics(
    session: TestSessionRecord,
    questions: List[QuestionRecord],
    answers: List[AnswerRecord]
) -> PerformanceMetrics:
    """
    Pure computation over one session's questions and answers.

    Answers for questions not assigned to the session are ignored, so
    total = answered + unanswered always holds.
    """
    assigned = {q.id for q in questions}
    answers = [a for a in answers if a.question_id in assigned]

    total_questions = len(questions)
    answered = [a for a in answers if a.is_answered]
    correct = sum(1 for a in answered if a.is_correct)
    total_time = sum(a.time_spent_seconds for a in answers)

    return PerformanceMetrics(
        user_id=session.user_id,
        test_session_id=session.id,
        overall_score=correct,
        total_questions=total_questions,
        correct_answers=correct,
        incorrect_answers=len(answered) - correct,
        unanswered_questions=total_questions - len(answered),
        accuracy_percentage=_ratio_percent(correct, len(answered)),
        average_time_per_question=total_time / len(answered) if answered else 0.0,
        total_time_spent=total_time,
        subject_wise_analysis=calculate_subject_wise_analysis(questions, answers),
        time_management_analysis=calculate_time_management_analysis(questions, answers),
        thinking_ability_assessment=calculate_thinking_ability_assessment(answers),
        calculated_at=datetime.utcnow(),
    )


def calculate_performance_metrics(store: AnalyticsStore, session_id: str) -> PerformanceMetrics:
    """
    Fetch a session's data and compute its metrics.

    Raises:
        NotFoundError: if the session does not exist
    """
    started = time.perf_counter()

    session = store.get_session(session_id)
    if session is None:
        raise NotFoundError(
            "Test session not found",
            code="SESSION_NOT_FOUND",
            details={"testSessionId": session_id},
        )

    answers = store.get_answers(session_id)
    questions = store.get_session_questions(session_id)
    metrics = build_performance_metrics(session, questions, answers)

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "Calculated metrics for session %s: %d questions, %.1f%% accuracy in %.1fms",
        session_id, metrics.total_questions, metrics.accuracy_percentage, elapsed_ms
    )
    if elapsed_ms > CALCULATION_SLA_MS:
        logger.warning(
            "Metrics calculation for session %s exceeded SLA: %.0fms > %dms",
            session_id, elapsed_ms, CALCULATION_SLA_MS
        )

    return metrics


def to_subject_metrics_records(metrics: PerformanceMetrics) -> List[SubjectMetricsRecord]:
    """One record per subject that had questions in the session."""
    return [
        SubjectMetricsRecord(
            id=generate_uuid(),
            user_id=metrics.user_id,
            test_session_id=metrics.test_session_id,
            subject=analysis.subject,
            total_questions=analysis.total_questions,
            correct_answers=analysis.correct_answers,
            accuracy_percentage=analysis.accuracy_percentage,
            average_time_per_question=analysis.average_time_per_question,
            strengths=analysis.strengths,
            weaknesses=analysis.weaknesses,
            calculated_at=metrics.calculated_at,
        )
        for analysis in metrics.subject_wise_analysis
        if analysis.total_questions > 0
    ]


def store_performance_metrics(store: AnalyticsStore, metrics: PerformanceMetrics) -> int:
    """Append the session's subject rows. Returns the number of rows written."""
    return store.insert_subject_metrics(to_subject_metrics_records(metrics))


def calculate_and_store_metrics(store: AnalyticsStore, session_id: str) -> Tuple[PerformanceMetrics, int]:
    metrics = calculate_performance_metrics(store, session_id)
    stored = store_performance_metrics(store, metrics)
    return metrics, stored


# =============================================================================
# STORED METRICS ROLLUPS
# =============================================================================

def get_user_performance(store: AnalyticsStore, user_id: str) -> List[SubjectMetricsRecord]:
    return store.get_subject_metrics_for_user(user_id)


def _merge_unique(existing: List[str], new: List[str]) -> List[str]:
    return existing + [item for item in new if item not in existing]


def get_subject_wise_breakdown(store: AnalyticsStore, user_id: str) -> List[SubjectAnalysis]:
    """
    Roll all stored rows up per subject.

    Totals and corrects are summed, accuracy is recomputed from the sums,
    average time is the mean of the rows' averages, and strengths/weaknesses
    are merged without duplicates.
    """
    rollup: "OrderedDict[str, SubjectAnalysis]" = OrderedDict()
    times: Dict[str, List[float]] = {}

    for row in store.get_subject_metrics_for_user(user_id):
        subject = rollup.get(row.subject)
        if subject is None:
            subject = rollup[row.subject] = SubjectAnalysis(
                subject=row.subject,
                total_questions=0,
                correct_answers=0,
                accuracy_percentage=0,
                average_time_per_question=0,
            )
            times[row.subject] = []

        subject.total_questions += row.total_questions
        subject.correct_answers += row.correct_answers
        subject.strengths = _merge_unique(subject.strengths, row.strengths)
        subject.weaknesses = _merge_unique(subject.weaknesses, row.weaknesses)
        times[row.subject].append(row.average_time_per_question)

    for name, subject in rollup.items():
        subject.accuracy_percentage = _ratio_percent(subject.correct_answers, subject.total_questions)
        subject.average_time_per_question = sum(times[name]) / len(times[name]) if times[name] else 0.0

    return list(rollup.values())
