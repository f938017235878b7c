# exams/models.py
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class Course(models.Model):
    tenant = models.ForeignKey('cores.Tenant', on_delete=models.PROTECT, related_name='courses')
    title = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title


class Exam(models.Model):
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name='exams')
    # Denormalized owner; must agree with course.tenant (checked by the availability gate)
    tenant = models.ForeignKey('cores.Tenant', on_delete=models.PROTECT, related_name='exams')

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    # Availability window, both ends optional
    available_from = models.DateTimeField(null=True, blank=True)
    available_until = models.DateTimeField(null=True, blank=True)

    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def clean(self):
        if self.available_from and self.available_until and self.available_from >= self.available_until:
            raise ValidationError({'available_until': "Window end must be after its start."})

    @property
    def total_points(self):
        return sum(q.points for q in self.questions.all())

    def __str__(self):
        return self.title


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = "multiple_choice", "Multiple Choice"
        TRUE_FALSE = "true_false", "True / False"
        SHORT_ANSWER = "short_answer", "Short Answer"
        ESSAY = "essay", "Essay"
        FILE_UPLOAD = "file_upload", "File Upload"

    # Scored by exact comparison against correct_answer
    OBJECTIVE_TYPES = (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)
    # Scored by a grader
    MANUAL_TYPES = (QuestionType.SHORT_ANSWER, QuestionType.ESSAY, QuestionType.FILE_UPLOAD)

    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.CASCADE)
    question_type = models.CharField(max_length=20, choices=QuestionType.choices, default=QuestionType.MULTIPLE_CHOICE)
    text = models.TextField()
    order_index = models.PositiveIntegerField(default=0)
    points = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    options = models.JSONField(default=list, blank=True)
    correct_answer = models.TextField(blank=True, help_text="Exact answer for multiple choice / true-false")
    # e.g. {"allowed_types": ["application/pdf"], "max_size_bytes": 5242880}
    file_requirements = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['order_index', 'id']

    @property
    def is_objective(self):
        return self.question_type in self.OBJECTIVE_TYPES

    @property
    def is_manual(self):
        return self.question_type in self.MANUAL_TYPES

    def clean(self):
        if self.is_objective and not self.correct_answer:
            raise ValidationError({'correct_answer': "Objective questions need a correct answer."})
        if not self.is_objective and self.correct_answer:
            raise ValidationError({'correct_answer': "Only objective questions carry a correct answer."})
        if self.question_type == self.QuestionType.MULTIPLE_CHOICE:
            if not self.options:
                raise ValidationError({'options': "Multiple choice questions need options."})
            if self.correct_answer not in self.options:
                raise ValidationError({'correct_answer': "Correct answer must be one of the options."})
        if self.question_type == self.QuestionType.TRUE_FALSE and self.correct_answer not in ('true', 'false'):
            raise ValidationError({'correct_answer': "True/false answers are 'true' or 'false'."})

    def __str__(self):
        return f"{self.text[:50]}..."
