from rest_framework import viewsets, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from assessments.permissions import IsGraderOrAdmin
from assessments.results import exam_summary, list_sessions
from assessments.serializers import ExamSessionSerializer
from .models import Exam
from .serializers import ExamSerializer, ExamDetailSerializer, ExamListSerializer


class ExamViewSet(viewsets.ReadOnlyModelViewSet):
    lookup_value_regex = r'\d+'

    # Enable search on title and course title
    filter_backends = [filters.SearchFilter]
    search_fields = ['title', 'course__title']

    def get_queryset(self):
        user = self.request.user
        queryset = Exam.objects.select_related('course').order_by('-created_at')
        if not user.is_superuser:
            # Exams of other organizations do not exist for this user
            queryset = queryset.filter(tenant_id=user.tenant_id, course__tenant_id=user.tenant_id)
        if not user.can_grade:
            queryset = queryset.filter(is_published=True)
        return queryset

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ExamDetailSerializer
        if self.action == 'list':
            # Graders get full info, Candidate gets simple list
            if self.request.user.can_grade:
                return ExamSerializer
            return ExamListSerializer
        return ExamSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['show_answers'] = self.request.user.can_grade
        return context

    def get_permissions(self):
        if self.action in ['sessions', 'summary']:
            return [IsGraderOrAdmin()]
        return [permissions.IsAuthenticated()]

    @action(detail=True, methods=['get'])
    def sessions(self, request, pk=None):
        exam = self.get_object()
        serializer = ExamSessionSerializer(list_sessions(exam.pk), many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        return Response(exam_summary(self.get_object()))
