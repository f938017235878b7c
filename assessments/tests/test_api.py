from datetime import timedelta
from unittest import mock

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from cores.models import AuditLog
from exams.models import Question
from assessments.models import ExamSession, ManualGrade
from assessments.uploads import StoredFile
from .helpers import ExamFixtures


@override_settings(ANSWER_STORE_ASYNC=False)
class ExamFlowAPITests(ExamFixtures, APITestCase):
    def setUp(self):
        cache.clear()
        self.tenant = self.make_tenant()
        self.candidate = self.make_user(self.tenant)
        self.grader = self.make_user(self.tenant, role='grader')
        self.exam = self.make_exam(self.tenant, duration_minutes=60)
        self.mcq = self.add_question(self.exam, points=5, correct_answer="A")
        self.essay = self.add_question(self.exam, Question.QuestionType.ESSAY, points=10)
        self.client.force_authenticate(self.candidate)

    def start(self):
        return self.client.post(f'/api/exams/{self.exam.pk}/start/')

    def test_start_then_resume(self):
        first = self.start()
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['status'], 'in_progress')
        self.assertEqual(first.data['timer']['level'], 'normal')
        questions = first.data['exam']['questions']
        self.assertEqual(len(questions), 2)
        self.assertNotIn('correct_answer', questions[0])

        second = self.start()
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(second.data['id'], first.data['id'])

    def test_start_outside_window(self):
        self.exam.available_from = timezone.now() + timedelta(days=1)
        self.exam.save()
        response = self.start()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'not_yet_open')

        self.exam.available_from = None
        self.exam.available_until = timezone.now() - timedelta(minutes=1)
        self.exam.save()
        self.assertEqual(self.start().data['code'], 'closed')
        self.assertFalse(ExamSession.objects.exists())

    def test_start_from_another_tenant(self):
        self.client.force_authenticate(self.make_user(self.make_tenant("Contoso College")))
        response = self.start()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'tenant_mismatch')

    def test_unpublished_exam_is_not_found(self):
        self.exam.is_published = False
        self.exam.save()
        self.assertEqual(self.start().status_code, status.HTTP_404_NOT_FOUND)

    def test_autosave_then_submit(self):
        session_id = self.start().data['id']

        saved = self.client.put(f'/api/exams/session/{session_id}/answers/', {'question_id': self.mcq.pk, 'answer': 'A'}, format='json')
        self.assertEqual(saved.status_code, status.HTTP_202_ACCEPTED)

        detail = self.client.get(f'/api/exams/session/{session_id}/')
        self.assertEqual(detail.data['answers'], {str(self.mcq.pk): 'A'})

        submitted = self.client.post(
            f'/api/exams/session/{session_id}/submit/',
            {'answers': [{'question_id': self.essay.pk, 'answer': 'Because of entropy.'}], 'auto_submitted': True},
            format='json',
        )
        self.assertEqual(submitted.status_code, status.HTTP_200_OK)
        self.assertFalse(submitted.data['auto_submitted'])
        self.assertEqual(submitted.data['session_status'], 'submitted')
        self.assertEqual(submitted.data['score'], 5)
        self.assertEqual(submitted.data['total_points'], 15)
        self.assertEqual(submitted.data['pending_manual_grading'], 1)

        again = self.client.post(f'/api/exams/session/{session_id}/submit/', {}, format='json')
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data['code'], 'already_submitted')

        late_edit = self.client.put(f'/api/exams/session/{session_id}/answers/', {'question_id': self.mcq.pk, 'answer': 'B'}, format='json')
        self.assertEqual(late_edit.status_code, status.HTTP_409_CONFLICT)

    def test_reopening_completed_exam(self):
        session_id = self.start().data['id']
        self.client.post(f'/api/exams/session/{session_id}/submit/', {}, format='json')

        response = self.start()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_completed')
        self.assertEqual(ExamSession.objects.count(), 1)

    def test_sessions_of_others_are_hidden(self):
        session_id = self.start().data['id']
        self.client.force_authenticate(self.make_user(self.tenant))
        self.assertEqual(self.client.get(f'/api/exams/session/{session_id}/').status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(UPLOAD_SERVICE_URL="https://files.example.org")
    def test_file_upload(self):
        upload = self.add_question(self.exam, Question.QuestionType.FILE_UPLOAD, points=10)
        session_id = self.start().data['id']
        pdf = SimpleUploadedFile("work.pdf", b"%PDF-1.7", content_type="application/pdf")

        with mock.patch('assessments.views.UploadServiceClient') as client_class:
            client_class.return_value.store.return_value = StoredFile("ref-9", "https://files.example.org/ref-9", 8)
            response = self.client.post(
                f'/api/exams/session/{session_id}/files/',
                {'question_id': upload.pk, 'file': pdf},
                format='multipart',
            )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['value'], 'ref-9')
        self.assertEqual(response.data['file_url'], 'https://files.example.org/ref-9')

    def test_attempts_list(self):
        self.start()
        response = self.client.get('/api/exams/attempts/')
        self.assertEqual(len(response.data), 1)
        self.assertIsNone(response.data[0]['percentage'])

    def test_grading_flow(self):
        session_id = self.start().data['id']
        self.client.post(
            f'/api/exams/session/{session_id}/submit/',
            {'answers': [{'question_id': self.mcq.pk, 'answer': 'A'}, {'question_id': self.essay.pk, 'answer': 'Essay'}]},
            format='json',
        )
        grade_url = f'/api/admin/grading/submit/{session_id}/'

        # Candidates never grade
        forbidden = self.client.post(grade_url, {'grades': [{'question_id': self.essay.pk, 'points': 10}]}, format='json')
        self.assertEqual(forbidden.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.grader)
        pending = self.client.get('/api/admin/grading/pending/')
        self.assertEqual([s['id'] for s in pending.data], [session_id])
        answers = {a['question']: a['value'] for a in pending.data[0]['answer_rows']}
        self.assertEqual(answers[self.essay.pk], 'Essay')

        too_many = self.client.post(grade_url, {'grades': [{'question_id': self.essay.pk, 'points': 11}]}, format='json')
        self.assertEqual(too_many.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(too_many.data['code'], 'out_of_range')

        graded = self.client.post(
            grade_url,
            {'grades': [{'question_id': self.essay.pk, 'points': '8.5', 'feedback': 'Clear argument'}]},
            format='json',
        )
        self.assertEqual(graded.status_code, status.HTTP_200_OK)
        self.assertEqual(graded.data['session_status'], 'graded')
        self.assertEqual(graded.data['final_score'], 13.5)
        self.assertEqual(ManualGrade.objects.get().feedback, 'Clear argument')

        sessions = self.client.get(f'/api/exams/{self.exam.pk}/sessions/')
        self.assertEqual(sessions.data[0]['percentage'], 90)
        summary = self.client.get(f'/api/exams/{self.exam.pk}/summary/')
        self.assertEqual(summary.data['graded'], 1)
        stats = self.client.get('/api/admin/stats/')
        self.assertEqual(stats.data['pending_grading'], 0)

    def test_grade_batch_is_all_or_nothing(self):
        second_essay = self.add_question(self.exam, Question.QuestionType.ESSAY, points=10)
        session_id = self.start().data['id']
        self.client.post(
            f'/api/exams/session/{session_id}/submit/',
            {'answers': [
                {'question_id': self.essay.pk, 'answer': 'First essay'},
                {'question_id': second_essay.pk, 'answer': 'Second essay'},
            ]},
            format='json',
        )

        self.client.force_authenticate(self.grader)
        response = self.client.post(
            f'/api/admin/grading/submit/{session_id}/',
            {'grades': [{'question_id': self.essay.pk, 'points': 7}, {'question_id': second_essay.pk, 'points': 99}]},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'out_of_range')
        self.assertFalse(ManualGrade.objects.exists())
        session = ExamSession.objects.get(pk=session_id)
        self.assertEqual(session.score, 0)
        self.assertEqual(session.status, ExamSession.Status.SUBMITTED)
        self.assertFalse(AuditLog.objects.filter(action='GRADE').exists())

    def test_edit_after_deadline_is_refused(self):
        session_id = self.start().data['id']
        ExamSession.objects.filter(pk=session_id).update(started_at=timezone.now() - timedelta(minutes=61))

        response = self.client.put(f'/api/exams/session/{session_id}/answers/', {'question_id': self.mcq.pk, 'answer': 'A'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_submitted')
        session = ExamSession.objects.get(pk=session_id)
        self.assertTrue(session.auto_submitted)
        self.assertEqual(session.score, 0)

    def test_grader_of_another_tenant_cannot_grade(self):
        session_id = self.start().data['id']
        self.client.post(f'/api/exams/session/{session_id}/submit/', {}, format='json')

        self.client.force_authenticate(self.make_user(self.make_tenant("Contoso College"), role='grader'))
        response = self.client.post(
            f'/api/admin/grading/submit/{session_id}/',
            {'grades': [{'question_id': self.essay.pk, 'points': 1}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
