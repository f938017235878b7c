# assessments/models.py
from django.db import models
from django.conf import settings
from exams.models import Exam, Question


class ExamSession(models.Model):
    """Tracks a candidate's single attempt at an exam."""

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", "In Progress"
        SUBMITTED = "submitted", "Submitted"
        GRADED = "graded", "Graded"

    # Allowed forward moves; nothing ever goes back
    TRANSITIONS = {
        Status.IN_PROGRESS: (Status.SUBMITTED,),
        Status.SUBMITTED: (Status.GRADED,),
        Status.GRADED: (),
    }

    participant = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='exam_sessions')
    exam = models.ForeignKey(Exam, on_delete=models.PROTECT, related_name='sessions')
    started_at = models.DateTimeField()
    submitted_at = models.DateTimeField(null=True, blank=True)
    auto_submitted = models.BooleanField(default=False)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)
    score = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    total_points = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        constraints = [
            # Single attempt: one session per participant per exam, ever
            models.UniqueConstraint(fields=['exam', 'participant'], name='one_session_per_participant'),
        ]

    @property
    def answers(self):
        return {a.question_id: a.value for a in self.answer_rows.all()}

    def can_move_to(self, status):
        return status in self.TRANSITIONS[self.status]

    def __str__(self):
        return f"{self.participant} - {self.exam.title}"


class SessionAnswer(models.Model):
    session = models.ForeignKey(ExamSession, related_name='answer_rows', on_delete=models.PROTECT)
    question = models.ForeignKey(Question, on_delete=models.PROTECT)

    # Raw text, or the upload service reference for file questions
    value = models.TextField(blank=True)
    # Acceptance order; a stored row is only replaced by a higher revision
    revision = models.BigIntegerField(default=0)

    file_url = models.URLField(max_length=500, blank=True)
    file_size = models.PositiveBigIntegerField(null=True, blank=True)
    file_name = models.CharField(max_length=255, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('session', 'question')


class ManualGrade(models.Model):
    """Points a grader awarded for one question of one session."""
    session = models.ForeignKey(ExamSession, related_name='manual_grades', on_delete=models.PROTECT)
    question = models.ForeignKey(Question, on_delete=models.PROTECT)
    grader = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='grades_given')

    awarded_points = models.DecimalField(max_digits=7, decimal_places=2)
    feedback = models.TextField(blank=True)  # Feedback from examiner
    graded_at = models.DateTimeField()

    class Meta:
        unique_together = ('session', 'question')


class ScoringIssue(models.Model):
    """Stored-data problem met while scoring, kept for follow-up."""
    session = models.ForeignKey(ExamSession, related_name='scoring_issues', on_delete=models.PROTECT)
    question = models.ForeignKey(Question, on_delete=models.PROTECT)
    code = models.CharField(max_length=40)
    detail = models.TextField(blank=True)
    detected_at = models.DateTimeField(auto_now_add=True)
    resolved = models.BooleanField(default=False)

    class Meta:
        unique_together = ('session', 'question', 'code')
        ordering = ['-detected_at']

    def __str__(self):
        return f"{self.code} on question {self.question_id} (session {self.session_id})"
