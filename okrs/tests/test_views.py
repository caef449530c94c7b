"""Tests for the OKR JSON endpoints."""
import io
import json
import uuid
from unittest import mock

import openpyxl
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase, Client
from django.urls import reverse

from okrs.models import OKR

User = get_user_model()


def xlsx_upload(rows, name='okr.xlsx'):
    workbook = openpyxl.Workbook()
    for row in rows:
        workbook.active.append(row)
    buf = io.BytesIO()
    workbook.save(buf)
    return SimpleUploadedFile(
        name, buf.getvalue(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    )


class OKRViewTestBase(TestCase):
    """Base class with a signed-in owner and a second user."""

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(username='alice@example.com', email='alice@example.com', password='secret123')
        self.other = User.objects.create_user(username='bob@example.com', email='bob@example.com', password='secret123')
        self.client.force_login(self.user)

        patcher = mock.patch('okrs.lifecycle.dispatch_notification')
        self.mock_dispatch = patcher.start()
        self.addCleanup(patcher.stop)

    def payload(self, **overrides):
        data = {
            'title': 'Grow revenue',
            'description': '',
            'objective': 'Increase recurring revenue',
            'quarter': 'Q1',
            'year': 2025,
            'key_results': [{'description': 'Increase MRR', 'target': '10000', 'current': '0'}],
        }
        data.update(overrides)
        return data

    def post_json(self, url, data=None):
        return self.client.post(
            url,
            data=json.dumps(data or {}),
            content_type='application/json'
        )

    def patch_json(self, url, data=None):
        return self.client.patch(
            url,
            data=json.dumps(data or {}),
            content_type='application/json'
        )

    def delete_json(self, url):
        return self.client.delete(url, content_type='application/json')

    def make_okr(self, owner=None, **fields):
        values = {
            'title': 'Existing',
            'objective': 'Objective',
            'quarter': 'Q2',
            'year': 2025,
            'key_results': [{'description': 'KR', 'target': '1', 'current': '0'}],
        }
        values.update(fields)
        return OKR.objects.create(owner=owner or self.user, **values)


class AuthenticationRequiredTests(OKRViewTestBase):

    def test_anonymous_requests_get_401(self):
        self.client.logout()
        okr = self.make_okr()
        calls = [
            self.client.get(reverse('okrs:okr_list')),
            self.post_json(reverse('okrs:create_okr'), self.payload()),
            self.client.get(reverse('okrs:get_okr', args=[okr.pk])),
            self.patch_json(reverse('okrs:update_okr', args=[okr.pk]), {'title': 'x'}),
            self.delete_json(reverse('okrs:delete_okr', args=[okr.pk])),
            self.client.post(reverse('okrs:extract_okr')),
        ]
        for resp in calls:
            self.assertEqual(resp.status_code, 401)
            self.assertEqual(resp.json()['error'], 'Authentication required')


class OKRCRUDTests(OKRViewTestBase):
    """Tests for OKR create/read/update/delete."""

    def test_create_okr(self):
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.post_json(reverse('okrs:create_okr'), self.payload(status='archived', progress=80))

        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['okr']['title'], 'Grow revenue')
        self.assertEqual(data['okr']['status'], 'active')
        self.assertEqual(data['okr']['progress'], 0)
        self.assertEqual(data['okr']['key_result_count'], 1)
        self.assertEqual(OKR.objects.get().owner, self.user)
        self.mock_dispatch.assert_called_once_with('alice@example.com', 'Grow revenue', 'created')

    def test_create_validation_errors(self):
        resp = self.post_json(reverse('okrs:create_okr'), self.payload(title='', key_results=[], year=2040))
        self.assertEqual(resp.status_code, 400)
        data = resp.json()
        self.assertFalse(data['success'])
        self.assertIn('title', data['errors'])
        self.assertIn('key_results', data['errors'])
        self.assertIn('year', data['errors'])
        self.assertEqual(OKR.objects.count(), 0)

    def test_create_invalid_json(self):
        resp = self.client.post(reverse('okrs:create_okr'), data='not json', content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error'], 'Invalid JSON')

    def test_create_non_object_json(self):
        resp = self.client.post(reverse('okrs:create_okr'), data='[1, 2]', content_type='application/json')
        self.assertEqual(resp.status_code, 400)

    def test_create_non_utf8_body(self):
        resp = self.client.post(reverse('okrs:create_okr'), data=b'{"title": "\xff\xfe"}', content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()['error'], 'Invalid JSON')
        self.assertEqual(OKR.objects.count(), 0)

    def test_create_store_failure_returns_503(self):
        with mock.patch('okrs.lifecycle.OKR.objects.create', side_effect=DatabaseError('db unavailable')):
            resp = self.post_json(reverse('okrs:create_okr'), self.payload())
        self.assertEqual(resp.status_code, 503)
        self.assertIn('db unavailable', resp.json()['error'])

    def test_list_only_own_okrs(self):
        mine = self.make_okr(title='Mine')
        self.make_okr(owner=self.other, title='Theirs')

        resp = self.client.get(reverse('okrs:okr_list'))
        self.assertEqual(resp.status_code, 200)
        okrs = resp.json()['okrs']
        self.assertEqual([o['id'] for o in okrs], [str(mine.pk)])

    def test_get_okr(self):
        okr = self.make_okr()
        resp = self.client.get(reverse('okrs:get_okr', args=[okr.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['okr']['id'], str(okr.pk))

    def test_get_other_users_okr_is_404(self):
        theirs = self.make_okr(owner=self.other, title='Secret plan')
        resp = self.client.get(reverse('okrs:get_okr', args=[theirs.pk]))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {'success': False, 'error': 'OKR not found'})

    def test_get_missing_okr_is_404(self):
        resp = self.client.get(reverse('okrs:get_okr', args=[uuid.uuid4()]))
        self.assertEqual(resp.status_code, 404)

    def test_update_okr(self):
        okr = self.make_okr()
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.patch_json(reverse('okrs:update_okr', args=[okr.pk]), {
                'title': 'Renamed',
                'status': 'completed',
                'progress': 75,
            })

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data['okr']['title'], 'Renamed')
        self.assertEqual(data['okr']['status'], 'completed')
        self.assertEqual(data['okr']['progress'], 75)
        self.mock_dispatch.assert_called_once_with('alice@example.com', 'Renamed', 'updated')

    def test_update_invalid_status(self):
        okr = self.make_okr()
        resp = self.patch_json(reverse('okrs:update_okr', args=[okr.pk]), {'status': 'done'})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('status', resp.json()['errors'])

    def test_update_other_users_okr_is_404(self):
        theirs = self.make_okr(owner=self.other)
        resp = self.patch_json(reverse('okrs:update_okr', args=[theirs.pk]), {'title': 'Mine now'})
        self.assertEqual(resp.status_code, 404)
        theirs.refresh_from_db()
        self.assertEqual(theirs.title, 'Existing')

    def test_update_non_utf8_body(self):
        okr = self.make_okr()
        resp = self.client.patch(reverse('okrs:update_okr', args=[okr.pk]), data=b'\x81\x82\x83', content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        okr.refresh_from_db()
        self.assertEqual(okr.title, 'Existing')

    def test_update_requires_patch(self):
        okr = self.make_okr()
        resp = self.post_json(reverse('okrs:update_okr', args=[okr.pk]), {'title': 'x'})
        self.assertEqual(resp.status_code, 405)

    def test_delete_okr(self):
        okr = self.make_okr()
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.delete_json(reverse('okrs:delete_okr', args=[okr.pk]))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['success'])
        self.assertEqual(OKR.objects.count(), 0)
        self.mock_dispatch.assert_not_called()

    def test_delete_other_users_okr_is_404(self):
        theirs = self.make_okr(owner=self.other)
        resp = self.delete_json(reverse('okrs:delete_okr', args=[theirs.pk]))
        self.assertEqual(resp.status_code, 404)
        self.assertTrue(OKR.objects.filter(pk=theirs.pk).exists())


class ExtractViewTests(OKRViewTestBase):
    """Tests for the spreadsheet pre-fill endpoint."""

    def test_extract_fills_draft(self):
        upload = xlsx_upload([
            ['Title', 'Description', 'Objective', 'Quarter', 'Year', 'KR', 'Target'],
            ['Grow revenue', 'Push', 'Double MRR', 'Q1', 2025, 'Increase MRR', 10000],
        ])
        resp = self.client.post(reverse('okrs:extract_okr'), {'file': upload})

        self.assertEqual(resp.status_code, 200)
        draft = resp.json()['draft']
        self.assertEqual(draft['title'], 'Grow revenue')
        self.assertEqual(draft['year'], 2025)
        self.assertEqual(draft['key_results'], [{'description': 'Increase MRR', 'target': '10000', 'current': '0'}])

    def test_extract_merges_with_posted_draft(self):
        current = self.payload(title='Keep me', objective='Keep me too')
        upload = xlsx_upload([['h'] * 3, [None, None, 'From sheet']])
        resp = self.client.post(reverse('okrs:extract_okr'), {'file': upload, 'draft': json.dumps(current)})

        draft = resp.json()['draft']
        self.assertEqual(draft['title'], 'Keep me')
        self.assertEqual(draft['objective'], 'From sheet')
        self.assertEqual(draft['key_results'], current['key_results'])

    def test_extract_unreadable_file_returns_unchanged_draft(self):
        current = self.payload(title='Keep me')
        upload = SimpleUploadedFile('okr.xlsx', b'garbage bytes')
        resp = self.client.post(reverse('okrs:extract_okr'), {'file': upload, 'draft': json.dumps(current)})

        self.assertEqual(resp.status_code, 422)
        data = resp.json()
        self.assertFalse(data['success'])
        self.assertEqual(data['draft'], current)

    def test_extract_requires_file(self):
        resp = self.client.post(reverse('okrs:extract_okr'), {})
        self.assertEqual(resp.status_code, 400)

    def test_extract_rejects_bad_draft_json(self):
        upload = xlsx_upload([['h'], ['t']])
        resp = self.client.post(reverse('okrs:extract_okr'), {'file': upload, 'draft': '{broken'})
        self.assertEqual(resp.status_code, 400)

    def test_extract_does_not_save(self):
        upload = xlsx_upload([
            ['Title', 'Description', 'Objective', 'Quarter', 'Year', 'KR', 'Target'],
            ['Grow revenue', 'Push', 'Double MRR', 'Q1', 2025, 'Increase MRR', 10000],
        ])
        self.client.post(reverse('okrs:extract_okr'), {'file': upload})
        self.assertEqual(OKR.objects.count(), 0)
        self.mock_dispatch.assert_not_called()
