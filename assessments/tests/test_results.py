from datetime import timedelta
from decimal import Decimal

from django.test import TestCase

from exams.models import Question
from assessments.grading import apply_manual_grade, submit
from assessments.models import ExamSession
from assessments.results import exam_summary, pending_grading, percentage
from assessments.sessions import open_or_resume
from .helpers import ExamFixtures, T0


class ResultsTests(ExamFixtures, TestCase):
    def setUp(self):
        self.tenant = self.make_tenant()
        self.grader = self.make_user(self.tenant, role='grader')
        self.exam = self.make_exam(self.tenant)
        self.mcq = self.add_question(self.exam, points=5, correct_answer="A")
        self.essay = self.add_question(self.exam, Question.QuestionType.ESSAY, points=5)

    def start(self, minutes=0):
        session, _ = open_or_resume(self.exam, self.make_user(self.tenant), now=T0 + timedelta(minutes=minutes))
        return session

    def test_summary_counts_and_averages(self):
        graded = self.start()
        submit(graded.pk, {self.mcq.pk: "A", self.essay.pk: "Essay"}, now=T0 + timedelta(minutes=10))
        apply_manual_grade(graded.pk, self.essay.pk, self.grader, 5)

        waiting = self.start()
        submit(waiting.pk, {self.mcq.pk: "B", self.essay.pk: "Essay"}, now=T0 + timedelta(minutes=10))

        timed_out = self.start()
        submit(timed_out.pk, {}, now=T0 + timedelta(minutes=90))

        self.start(minutes=80)

        summary = exam_summary(self.exam)

        self.assertEqual(summary['total_sessions'], 4)
        self.assertEqual((summary['in_progress'], summary['submitted'], summary['graded']), (1, 1, 2))
        self.assertEqual(summary['auto_submitted'], 1)
        # (10 + 0 + 0) / 3 completed sessions
        self.assertEqual(summary['average_score'], Decimal('3.33'))
        self.assertEqual(summary['average_percentage'], 33)

    def test_summary_without_completed_sessions(self):
        self.start()
        summary = exam_summary(self.exam)
        self.assertIsNone(summary['average_score'])
        self.assertEqual(summary['in_progress'], 1)

    def test_pending_grading_lists_only_submitted_sessions(self):
        waiting = self.start()
        submit(waiting.pk, {self.essay.pk: "Essay"}, now=T0 + timedelta(minutes=10))
        done = self.start()
        submit(done.pk, {}, now=T0 + timedelta(minutes=10))

        self.assertEqual([s.pk for s in pending_grading()], [waiting.pk])
        self.assertEqual([s.pk for s in pending_grading(self.exam)], [waiting.pk])

    def test_percentage(self):
        session = ExamSession(score=Decimal('7'), total_points=10)
        self.assertEqual(percentage(session), 70)
        self.assertEqual(percentage(ExamSession(score=None, total_points=None)), 0)
