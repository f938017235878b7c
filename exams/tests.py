from datetime import timedelta

from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework.test import APITestCase

from cores import exceptions
from assessments.tests.helpers import ExamFixtures, T0
from .availability import Availability, check, require_open
from .models import Course, Question


class AvailabilityGateTests(ExamFixtures, TestCase):
    def setUp(self):
        self.tenant = self.make_tenant()
        self.exam = self.make_exam(
            self.tenant,
            available_from=T0,
            available_until=T0 + timedelta(days=1),
        )

    def test_inside_window(self):
        self.assertIs(check(self.exam, self.tenant, T0 + timedelta(hours=1)), Availability.ALLOW)
        self.assertIs(check(self.exam, self.tenant.pk, T0), Availability.ALLOW)

    def test_before_and_after_window(self):
        self.assertIs(check(self.exam, self.tenant, T0 - timedelta(seconds=1)), Availability.NOT_YET_OPEN)
        self.assertIs(check(self.exam, self.tenant, T0 + timedelta(days=1, seconds=1)), Availability.CLOSED)

    def test_open_ended_window(self):
        self.exam.available_from = None
        self.exam.available_until = None
        self.assertIs(check(self.exam, self.tenant, T0 - timedelta(days=300)), Availability.ALLOW)

    def test_other_tenant_is_refused(self):
        self.assertIs(check(self.exam, self.make_tenant("Contoso College"), T0), Availability.TENANT_MISMATCH)
        self.assertIs(check(self.exam, None, T0), Availability.TENANT_MISMATCH)

    def test_course_tenant_decides_ownership(self):
        other = self.make_tenant("Contoso College")
        self.exam.tenant = other
        self.exam.save()

        # Exam and course disagree: nobody gets in, not even either owner
        self.assertIs(check(self.exam, other, T0), Availability.TENANT_MISMATCH)
        self.assertIs(check(self.exam, self.tenant, T0), Availability.TENANT_MISMATCH)

    def test_tenant_is_checked_before_window(self):
        self.assertIs(check(self.exam, self.make_tenant(), T0 - timedelta(days=1)), Availability.TENANT_MISMATCH)

    def test_require_open_raises_window_errors(self):
        with self.assertRaises(exceptions.NotYetOpen):
            require_open(self.exam, self.tenant, T0 - timedelta(minutes=1))
        with self.assertRaises(exceptions.Closed):
            require_open(self.exam, self.tenant, T0 + timedelta(days=2))
        with self.assertRaises(exceptions.TenantMismatch):
            require_open(self.exam, self.make_tenant(), T0)
        self.assertIs(require_open(self.exam, self.tenant, T0), Availability.ALLOW)


class QuestionValidationTests(ExamFixtures, TestCase):
    def setUp(self):
        self.exam = self.make_exam(self.make_tenant())

    def test_objective_question_needs_a_key(self):
        question = Question(exam=self.exam, question_type=Question.QuestionType.TRUE_FALSE, text="?", points=1)
        with self.assertRaises(ValidationError):
            question.full_clean()
        question.correct_answer = "true"
        question.full_clean()

    def test_multiple_choice_key_must_be_an_option(self):
        question = Question(exam=self.exam, text="?", points=1, options=["A", "B"], correct_answer="C")
        with self.assertRaises(ValidationError):
            question.full_clean()

    def test_manual_question_has_no_key(self):
        question = Question(exam=self.exam, question_type=Question.QuestionType.ESSAY, text="?", points=1, correct_answer="x")
        with self.assertRaises(ValidationError):
            question.full_clean()

    def test_points_must_be_positive(self):
        question = Question(exam=self.exam, question_type=Question.QuestionType.ESSAY, text="?", points=0)
        with self.assertRaises(ValidationError):
            question.full_clean()

    def test_window_must_be_ordered(self):
        self.exam.available_from = T0
        self.exam.available_until = T0 - timedelta(hours=1)
        with self.assertRaises(ValidationError):
            self.exam.full_clean()


class ExamAPITests(ExamFixtures, APITestCase):
    def setUp(self):
        self.tenant = self.make_tenant()
        self.published = self.make_exam(self.tenant)
        self.add_question(self.published, correct_answer="A")
        self.draft = self.make_exam(self.tenant, is_published=False)
        self.foreign = self.make_exam(self.make_tenant("Contoso College"))

    def test_candidates_see_published_exams_of_their_tenant(self):
        self.client.force_authenticate(self.make_user(self.tenant))
        response = self.client.get('/api/exams/')
        self.assertEqual([e['id'] for e in response.data], [self.published.pk])
        self.assertEqual(self.client.get(f'/api/exams/{self.foreign.pk}/').status_code, 404)

    def test_answer_key_is_hidden_from_candidates(self):
        self.client.force_authenticate(self.make_user(self.tenant))
        question = self.client.get(f'/api/exams/{self.published.pk}/').data['questions'][0]
        self.assertNotIn('correct_answer', question)

    def test_graders_see_drafts_and_answer_keys(self):
        self.client.force_authenticate(self.make_user(self.tenant, role='examiner'))
        listed = self.client.get('/api/exams/')
        self.assertEqual({e['id'] for e in listed.data}, {self.published.pk, self.draft.pk})
        detail = self.client.get(f'/api/exams/{self.published.pk}/')
        self.assertEqual(detail.data['questions'][0]['correct_answer'], 'A')
        self.assertEqual(detail.data['total_points'], 5)

    def test_candidates_cannot_read_session_lists(self):
        self.client.force_authenticate(self.make_user(self.tenant))
        self.assertEqual(self.client.get(f'/api/exams/{self.published.pk}/sessions/').status_code, 403)

    def test_anonymous_requests_are_rejected(self):
        self.assertEqual(self.client.get('/api/exams/').status_code, 401)

    def test_course_listing_uses_course_title(self):
        Course.objects.filter(pk=self.published.course_id).update(title="Organic Chemistry")
        self.client.force_authenticate(self.make_user(self.tenant))
        self.assertEqual(self.client.get('/api/exams/').data[0]['course'], "Organic Chemistry")
