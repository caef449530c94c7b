"""
Tests for the Resend client and the fire-and-forget notification dispatcher.
"""
from unittest import mock

import requests
from django.test import SimpleTestCase, override_settings

from okrs.exceptions import NotifierError
from okrs.notifications import deliver_notification, dispatch_notification
from okrs.services.resend_client import ResendClient, build_html, build_subject


class TestResendClient(SimpleTestCase):
    """Test Resend API client basic functionality"""

    @override_settings(RESEND_API_KEY=None)
    def test_missing_api_key_error(self):
        """Should raise clear error when API key is missing"""
        with self.assertRaises(ValueError) as context:
            ResendClient()

        self.assertIn('RESEND_API_KEY', str(context.exception))

    @override_settings(RESEND_API_KEY='re_settings_key', OKR_NOTIFICATION_SENDER='OKR Manager <onboarding@resend.dev>')
    def test_api_key_from_settings(self):
        client = ResendClient()
        self.assertEqual(client.api_key, 're_settings_key')
        self.assertEqual(client.sender, 'OKR Manager <onboarding@resend.dev>')

    @override_settings(RESEND_API_KEY='re_settings_key', OKR_NOTIFICATION_SENDER='Team <okrs@example.com>')
    @mock.patch('okrs.services.resend_client.requests.post')
    def test_sender_from_settings(self, mock_post):
        mock_post.return_value.json.return_value = {'id': 'msg_1'}

        ResendClient().notify('alice@example.com', 'Grow revenue', 'created')

        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs['json']['from'], 'Team <okrs@example.com>')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer re_settings_key')

    @mock.patch('okrs.services.resend_client.requests.post')
    def test_notify_sends_templated_email(self, mock_post):
        """Subject is 'OKR {action}: {title}' and the body names both"""
        mock_response = mock.Mock()
        mock_response.status_code = 200
        mock_response.json.return_value = {'id': 'email_123'}
        mock_post.return_value = mock_response

        client = ResendClient(api_key='re_test')
        result = client.notify('alice@example.com', 'Grow revenue', 'created')

        self.assertEqual(result, {'id': 'email_123'})
        call_args = mock_post.call_args
        self.assertEqual(call_args[0][0], 'https://api.resend.com/emails')
        self.assertEqual(call_args[1]['headers']['Authorization'], 'Bearer re_test')

        payload = call_args[1]['json']
        self.assertEqual(payload['to'], ['alice@example.com'])
        self.assertEqual(payload['subject'], 'OKR created: Grow revenue')
        self.assertIn('Grow revenue', payload['html'])
        self.assertIn('has been created', payload['html'])

    @mock.patch('okrs.services.resend_client.requests.post')
    def test_http_error_becomes_notifier_error(self, mock_post):
        """Should raise NotifierError on 4xx/5xx from Resend"""
        mock_response = mock.Mock()
        mock_response.status_code = 422
        mock_response.text = '{"message": "invalid from"}'
        mock_response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            '422 Client Error', response=mock_response
        )
        mock_post.return_value = mock_response

        client = ResendClient(api_key='re_test')
        with self.assertRaises(NotifierError) as context:
            client.notify('alice@example.com', 'Grow revenue', 'updated')

        self.assertIn('invalid from', context.exception.message)

    @mock.patch('okrs.services.resend_client.requests.post')
    def test_connection_error_becomes_notifier_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('no route')

        client = ResendClient(api_key='re_test')
        with self.assertRaises(NotifierError):
            client.notify('alice@example.com', 'Grow revenue', 'created')

    @mock.patch('okrs.services.resend_client.requests.post')
    def test_unknown_action_rejected_before_request(self, mock_post):
        client = ResendClient(api_key='re_test')
        with self.assertRaises(NotifierError):
            client.notify('alice@example.com', 'Grow revenue', 'deleted')
        mock_post.assert_not_called()

    def test_title_is_escaped_in_body(self):
        html_body = build_html('<script>x</script>', 'updated')
        self.assertNotIn('<script>', html_body)
        self.assertEqual(build_subject('Q1 plan', 'updated'), 'OKR updated: Q1 plan')


class TestNotificationDispatch(SimpleTestCase):
    """Delivery outcomes are logged, never raised."""

    def test_deliver_success(self):
        client = mock.Mock()
        self.assertTrue(deliver_notification('alice@example.com', 'Grow revenue', 'created', client=client))
        client.notify.assert_called_once_with('alice@example.com', 'Grow revenue', 'created')

    def test_deliver_failure_is_logged(self):
        client = mock.Mock()
        client.notify.side_effect = NotifierError('Resend rejected the email')

        with self.assertLogs('okrs.notifications', level='WARNING') as logs:
            result = deliver_notification('alice@example.com', 'Grow revenue', 'created', client=client)

        self.assertFalse(result)
        self.assertIn('not sent', logs.output[0])

    @override_settings(RESEND_API_KEY=None)
    def test_deliver_without_api_key_is_logged(self):
        with self.assertLogs('okrs.notifications', level='WARNING'):
            self.assertFalse(deliver_notification('alice@example.com', 'Grow revenue', 'created'))

    def test_unexpected_error_is_logged(self):
        client = mock.Mock()
        client.notify.side_effect = RuntimeError('boom')

        with self.assertLogs('okrs.notifications', level='ERROR'):
            self.assertFalse(deliver_notification('alice@example.com', 'Grow revenue', 'created', client=client))

    @mock.patch('okrs.notifications.deliver_notification')
    def test_dispatch_runs_on_background_thread(self, mock_deliver):
        thread = dispatch_notification('alice@example.com', 'Grow revenue', 'updated')
        thread.join(timeout=5)

        self.assertTrue(thread.daemon)
        mock_deliver.assert_called_once_with('alice@example.com', 'Grow revenue', 'updated')
