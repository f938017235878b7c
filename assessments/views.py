import logging

from rest_framework import generics, permissions, status, views
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from django.db import transaction
from django.shortcuts import get_object_or_404

from cores.exceptions import ExamError
from exams.availability import require_open
from exams.models import Exam
from .answers import answer_store, attach_file
from .grading import apply_manual_grade, submit
from .models import ExamSession, ScoringIssue
from .permissions import IsGraderOrAdmin
from .results import pending_grading
from .serializers import (
    ActiveExamSessionSerializer, AnswerInputSerializer, ExamSessionSerializer, ExamSubmitSerializer,
    FileAnswerSerializer, GradeSubmitSerializer, GradingSessionSerializer, SessionAnswerSerializer,
)
from .sessions import open_or_resume
from .uploads import UploadServiceClient

logger = logging.getLogger(__name__)


def _error(exc):
    return Response({"error": str(exc), "code": exc.code}, status=exc.status_code)


def _own_session(request, session_id):
    return get_object_or_404(ExamSession.objects.select_related('exam'), id=session_id, participant=request.user)


def _tenant_sessions(user):
    queryset = ExamSession.objects.select_related('exam', 'participant')
    if user.is_superuser:
        return queryset
    return queryset.filter(exam__tenant_id=user.tenant_id)


# --- ADMIN / GRADER VIEWS ---

class AdminStatsView(views.APIView):
    """
    Returns aggregated statistics for the grading dashboard.
    """
    permission_classes = [IsGraderOrAdmin]

    def get(self, request):
        sessions = _tenant_sessions(request.user)
        exams = Exam.objects.all() if request.user.is_superuser else Exam.objects.filter(tenant_id=request.user.tenant_id)
        return Response({
            "total_exams": exams.count(),
            "in_progress": sessions.filter(status=ExamSession.Status.IN_PROGRESS).count(),
            # Submitted but still waiting on a grader
            "pending_grading": sessions.filter(status=ExamSession.Status.SUBMITTED).count(),
            "auto_submitted": sessions.filter(auto_submitted=True).count(),
            "open_scoring_issues": ScoringIssue.objects.filter(session__in=sessions, resolved=False).count(),
        })


class PendingGradingListView(generics.ListAPIView):
    """List all exam sessions that still require manual grading."""
    permission_classes = [IsGraderOrAdmin]
    serializer_class = GradingSessionSerializer

    def get_queryset(self):
        queryset = pending_grading().filter(pk__in=_tenant_sessions(self.request.user).values('pk'))
        exam_id = self.request.query_params.get('exam_id')
        if exam_id:
            queryset = queryset.filter(exam_id=exam_id)
        return queryset


class GradingSessionDetailView(generics.RetrieveAPIView):
    permission_classes = [IsGraderOrAdmin]
    serializer_class = GradingSessionSerializer

    def get_queryset(self):
        return _tenant_sessions(self.request.user)


class SubmitGradeView(views.APIView):
    """Grader submits marks for one or more answers of a session."""
    permission_classes = [IsGraderOrAdmin]

    def post(self, request, session_id):
        session = get_object_or_404(_tenant_sessions(request.user), id=session_id)

        # Expects a list of { "question_id": 1, "points": 5, "feedback": "..." }
        serializer = GradeSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        # All or nothing: one bad entry rolls back the grades before it
        try:
            with transaction.atomic():
                for grade in serializer.validated_data['grades']:
                    result = apply_manual_grade(
                        session.pk, grade['question_id'], request.user, grade['points'], grade['feedback'],
                    )
        except ExamError as e:
            return _error(e)

        session = result.session
        return Response({
            "status": "Graded successfully",
            "session_status": session.status,
            "final_score": session.score,
            "total_points": session.total_points,
            "pending_questions": result.pending,
        })


# --- STUDENT VIEWS ---

class StartExamView(views.APIView):
    """
    Student starts (or resumes) an exam.
    Returns the session WITH questions, buffered answers and the timer.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, exam_id):
        exam = get_object_or_404(Exam.objects.select_related('course'), id=exam_id, is_published=True)
        try:
            require_open(exam, request.user.tenant_id)
            session, created = open_or_resume(exam, request.user)
        except ExamError as e:
            return _error(e)

        serializer = ActiveExamSessionSerializer(session)
        return Response(serializer.data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class RecordAnswerView(views.APIView):
    """Autosave for a single answer. Accepted immediately, written in the background."""
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, session_id):
        session = _own_session(request, session_id)
        serializer = AnswerInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            answer_store.accept(session.pk, serializer.validated_data['question_id'], serializer.validated_data['answer'])
        except ExamError as e:
            return _error(e)
        return Response({"status": "accepted"}, status=status.HTTP_202_ACCEPTED)


class UploadAnswerFileView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = (MultiPartParser, FormParser)

    def post(self, request, session_id):
        session = _own_session(request, session_id)
        serializer = FileAnswerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            answer = attach_file(
                session.pk,
                serializer.validated_data['question_id'],
                serializer.validated_data['file'],
                UploadServiceClient(),
            )
        except ExamError as e:
            return _error(e)
        return Response(SessionAnswerSerializer(answer).data, status=status.HTTP_201_CREATED)


class SubmitExamView(views.APIView):
    """
    Student submits answers.
    Scores objective questions immediately; free-form ones wait for a grader.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, session_id):
        session = _own_session(request, session_id)
        serializer = ExamSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        final_answers = {a['question_id']: a['answer'] for a in serializer.validated_data['answers']}
        try:
            result = submit(
                session.pk,
                final_answers,
                client_auto_submit=serializer.validated_data['auto_submitted'],
                actor=request.user,
            )
        except ExamError as e:
            return _error(e)

        session = result.session
        return Response({
            "status": "Submitted",
            "auto_submitted": session.auto_submitted,
            "submitted_at": session.submitted_at,
            "session_status": session.status,
            "score": session.score,
            "total_points": session.total_points,
            "pending_manual_grading": len(result.pending),
        })


class StudentExamAttemptsView(generics.ListAPIView):
    """List all exam sessions for the logged-in student (Lightweight)."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ExamSessionSerializer

    def get_queryset(self):
        return ExamSession.objects.select_related('exam__course').filter(participant=self.request.user).order_by('-started_at')


class ExamSessionDetailView(generics.RetrieveAPIView):
    """Allow student to retrieve a specific session (Heavy - Includes Questions and answers)."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ActiveExamSessionSerializer

    def get_object(self):
        return _own_session(self.request, self.kwargs['pk'])
