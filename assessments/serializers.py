from rest_framework import serializers
from .models import ExamSession, SessionAnswer, ManualGrade, ScoringIssue
from .deadline import timer_state
from .results import percentage
from exams.serializers import ExamListSerializer, ExamDetailSerializer


class SessionAnswerSerializer(serializers.ModelSerializer):
    class Meta:
        model = SessionAnswer
        fields = ['question', 'value', 'file_url', 'file_name', 'file_size', 'updated_at']


class ManualGradeSerializer(serializers.ModelSerializer):
    grader_email = serializers.CharField(source='grader.email', read_only=True)

    class Meta:
        model = ManualGrade
        fields = ['question', 'grader', 'grader_email', 'awarded_points', 'feedback', 'graded_at']


class ScoringIssueSerializer(serializers.ModelSerializer):
    class Meta:
        model = ScoringIssue
        fields = ['id', 'question', 'code', 'detail', 'detected_at', 'resolved']


class ExamSessionSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / dashboard history."""
    exam = ExamListSerializer(read_only=True)
    participant_email = serializers.CharField(source='participant.email', read_only=True)
    percentage = serializers.SerializerMethodField()

    class Meta:
        model = ExamSession
        fields = [
            'id', 'exam', 'participant', 'participant_email', 'started_at', 'submitted_at',
            'auto_submitted', 'status', 'score', 'total_points', 'percentage',
        ]
        read_only_fields = fields

    def get_percentage(self, obj):
        if obj.status == ExamSession.Status.IN_PROGRESS:
            return None
        return percentage(obj)


class ActiveExamSessionSerializer(ExamSessionSerializer):
    """Heavy serializer for taking the exam. Includes QUESTIONS and buffered answers."""
    exam = ExamDetailSerializer(read_only=True)
    answers = serializers.SerializerMethodField()
    timer = serializers.SerializerMethodField()

    class Meta(ExamSessionSerializer.Meta):
        fields = ExamSessionSerializer.Meta.fields + ['answers', 'timer']
        read_only_fields = fields

    def get_answers(self, obj):
        return {str(question_id): value for question_id, value in obj.answers.items()}

    def get_timer(self, obj):
        return timer_state(obj)


class GradingSessionSerializer(ExamSessionSerializer):
    """What a grader needs: every answer row, the grades so far and open data issues."""
    answer_rows = SessionAnswerSerializer(many=True, read_only=True)
    manual_grades = ManualGradeSerializer(many=True, read_only=True)
    scoring_issues = serializers.SerializerMethodField()

    class Meta(ExamSessionSerializer.Meta):
        fields = ExamSessionSerializer.Meta.fields + ['answer_rows', 'manual_grades', 'scoring_issues']
        read_only_fields = fields

    def get_scoring_issues(self, obj):
        return ScoringIssueSerializer(obj.scoring_issues.filter(resolved=False), many=True).data


# --- Input ---

class AnswerInputSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    answer = serializers.CharField(allow_blank=True, trim_whitespace=False)


class ExamSubmitSerializer(serializers.Serializer):
    answers = AnswerInputSerializer(many=True, default=list)
    # Client's own view of the timer; recorded but never trusted
    auto_submitted = serializers.BooleanField(default=False)


class FileAnswerSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    file = serializers.FileField()


class GradeInputSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    points = serializers.DecimalField(max_digits=7, decimal_places=2)
    feedback = serializers.CharField(allow_blank=True, default="")


class GradeSubmitSerializer(serializers.Serializer):
    grades = GradeInputSerializer(many=True, allow_empty=False)
