from datetime import datetime, timedelta, timezone as dt_timezone
from itertools import count

from django.contrib.auth import get_user_model

from cores.models import Tenant
from exams.models import Course, Exam, Question

User = get_user_model()

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=dt_timezone.utc)
# Well inside the default sixty minute allotment of a session opened at T0
DURING = T0 + timedelta(minutes=5)

_seq = count(1)


class ExamFixtures:
    """Builders shared by the exam and assessment tests."""

    def make_tenant(self, name="Northwind Academy"):
        n = next(_seq)
        return Tenant.objects.create(name=name, slug=f"tenant-{n}")

    def make_user(self, tenant, role=User.Role.CANDIDATE, **extra):
        n = next(_seq)
        return User.objects.create_user(
            username=f"user{n}",
            email=f"user{n}@example.org",
            password="s3cret-pass",
            role=role,
            tenant=tenant,
            **extra,
        )

    def make_exam(self, tenant, duration_minutes=60, course=None, **extra):
        course = course or Course.objects.create(tenant=tenant, title="Chemistry 101")
        extra.setdefault('is_published', True)
        return Exam.objects.create(
            course=course,
            tenant=tenant,
            title="Midterm",
            duration_minutes=duration_minutes,
            **extra,
        )

    def add_question(self, exam, question_type=Question.QuestionType.MULTIPLE_CHOICE, points=5, correct_answer=None, **extra):
        if correct_answer is None:
            correct_answer = "A" if question_type == Question.QuestionType.MULTIPLE_CHOICE else ""
        if question_type == Question.QuestionType.MULTIPLE_CHOICE:
            extra.setdefault('options', ["A", "B", "C", "D"])
        return Question.objects.create(
            exam=exam,
            question_type=question_type,
            text=f"Question {exam.questions.count() + 1}",
            order_index=exam.questions.count(),
            points=points,
            correct_answer=correct_answer,
            **extra,
        )
