"""Read-side helpers for result pages and grader dashboards."""
from collections import Counter
from decimal import Decimal

from .models import ExamSession
from .sessions import get_session, list_sessions

__all__ = ['get_session', 'list_sessions', 'pending_grading', 'percentage', 'exam_summary']


def pending_grading(exam=None):
    queryset = ExamSession.objects.select_related('exam', 'participant').filter(status=ExamSession.Status.SUBMITTED)
    if exam is not None:
        queryset = queryset.filter(exam=exam)
    return queryset.order_by('submitted_at')


def percentage(session):
    if not session.total_points:
        return 0
    return round((session.score or 0) / session.total_points * 100)


def exam_summary(exam):
    sessions = list(list_sessions(exam.pk))
    completed = [s for s in sessions if s.status != ExamSession.Status.IN_PROGRESS]
    by_status = Counter(s.status for s in sessions)

    summary = {
        'exam_id': exam.pk,
        'total_sessions': len(sessions),
        'in_progress': by_status[ExamSession.Status.IN_PROGRESS],
        'submitted': by_status[ExamSession.Status.SUBMITTED],
        'graded': by_status[ExamSession.Status.GRADED],
        'auto_submitted': sum(1 for s in completed if s.auto_submitted),
        'average_score': None,
        'average_percentage': None,
    }
    if completed:
        average_score = sum((s.score or Decimal('0')) for s in completed) / len(completed)
        average_total = sum((s.total_points or 0) for s in completed) / len(completed)
        summary['average_score'] = round(average_score, 2)
        summary['average_percentage'] = round(float(average_score) / average_total * 100) if average_total else 0
    return summary
