# exams/serializers.py
from rest_framework import serializers
from .models import Course, Exam, Question


class CourseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = ['id', 'title', 'tenant']


# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    """Full question, answer key included. Graders only."""
    # Map frontend 'question_text' to backend 'text'
    question_text = serializers.CharField(source='text')

    class Meta:
        model = Question
        fields = [
            'id', 'exam', 'question_text', 'question_type', 'order_index',
            'points', 'options', 'correct_answer', 'file_requirements',
        ]


class PublicQuestionSerializer(QuestionSerializer):
    """What a candidate sees while taking the exam."""
    class Meta(QuestionSerializer.Meta):
        fields = [f for f in QuestionSerializer.Meta.fields if f != 'correct_answer']


# --- Exam Serializers ---

class ExamListSerializer(serializers.ModelSerializer):
    course = serializers.CharField(source='course.title', read_only=True)

    class Meta:
        model = Exam
        fields = ['id', 'title', 'course', 'duration_minutes', 'available_from', 'available_until']


class ExamSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source='course.title', read_only=True)
    # Read-only counts
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)
    total_points = serializers.IntegerField(read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'description', 'course', 'course_title',
            'duration_minutes', 'available_from', 'available_until',
            'is_published', 'total_questions', 'total_points',
        ]


class ExamDetailSerializer(ExamSerializer):
    """Detailed view; the answer key is only shown when ``show_answers`` is set in the context."""
    questions = serializers.SerializerMethodField()

    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ['questions']

    def get_questions(self, obj):
        serializer_class = QuestionSerializer if self.context.get('show_answers') else PublicQuestionSerializer
        return serializer_class(obj.questions.all(), many=True).data
