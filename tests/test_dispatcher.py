import unittest
from unittest import mock

from marine_client.config import MarineConfig
from marine_client.core import errors
from marine_client.core.dispatcher import RequestDispatcher, deep_merge
from marine_client.core.models import CancelToken, Credentials, RetryState

from fakes import ScriptedTransport, envelope


def make_dispatcher(transport, **cfg_overrides):
    cfg = MarineConfig(base_url="https://api.example.test/v1/", **cfg_overrides)
    sleeps = []
    d = RequestDispatcher(Credentials("a", "b"), cfg, transport, sleep=sleeps.append)
    return d, sleeps


class UrlAndHeaderTests(unittest.TestCase):
    def test_relative_path_concatenated_unchanged(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        d.send("GET", "/settings/get")
        self.assertEqual(t.calls[0]["url"], "https://api.example.test/v1//settings/get")

    def test_absolute_https_url_bypasses_base(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        d.send("GET", "https://other.example.test/x")
        self.assertEqual(t.calls[0]["url"], "https://other.example.test/x")

    def test_plain_http_url_is_treated_as_relative(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        d.send("GET", "http://other.example.test/x")
        self.assertEqual(t.calls[0]["url"], "https://api.example.test/v1/http://other.example.test/x")

    def test_authorization_header_attached(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        d.send("GET", "/x", {"headers": {"X-Trace": "1"}})
        headers = t.calls[0]["headers"]
        self.assertEqual(headers["Authorization"], "Basic YTpi")
        self.assertEqual(headers["X-Trace"], "1")
        self.assertEqual(headers["Accept"], "application/json")
        self.assertNotIn("Content-Type", headers)

    def test_caller_may_override_authorization_explicitly(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        d.send("GET", "/x", {"headers": {"Authorization": "Bearer other"}})
        self.assertEqual(t.calls[0]["headers"]["Authorization"], "Bearer other")

    def test_non_dict_headers_rejected(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        for bad in (None, "Authorization: x", ["X-Trace"]):
            with self.assertRaises(errors.ValidationError):
                d.send("GET", "/x", {"headers": bad})
        self.assertEqual(t.calls, [])

    def test_no_authorization_without_complete_credentials(self):
        t = ScriptedTransport(envelope(200, {}))
        d = RequestDispatcher(Credentials("a", ""), MarineConfig(), t, sleep=lambda s: None)
        d.send("GET", "/x")
        self.assertNotIn("Authorization", t.calls[0]["headers"])

    def test_body_serialized_as_json(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        d.send("POST", "/listing/get?page=1", {"body": {"manufacturer": "Beneteau"}})
        self.assertEqual(t.last_json_body(), {"manufacturer": "Beneteau"})
        self.assertEqual(t.calls[0]["headers"]["Content-Type"], "application/json")
        self.assertEqual(t.calls[0]["method"], "POST")

    def test_deep_merge(self):
        base = {"headers": {"Authorization": "x", "A": "1"}, "keep": [1]}
        out = deep_merge(base, {"headers": {"A": "2"}, "keep": [2], "body": {"k": 1}})
        self.assertEqual(out, {"headers": {"Authorization": "x", "A": "2"}, "keep": [2], "body": {"k": 1}})
        self.assertEqual(base["headers"]["A"], "1")


class RetryTests(unittest.TestCase):
    def test_retries_exactly_limit_then_succeeds(self):
        limit = 10
        t = ScriptedTransport(*([envelope(503, {"code": "too_busy", "message": "busy"})] * limit),
                              envelope(200, {"ok": True}))
        d, sleeps = make_dispatcher(t, retry_limit=limit)
        self.assertEqual(d.send("GET", "/x"), {"ok": True})
        self.assertEqual(len(t.calls), limit + 1)
        self.assertEqual(len(sleeps), limit)

    def test_exhausted_retries_raise_mapped_error(self):
        t = ScriptedTransport(envelope(503, {"code": "too_busy", "message": "busy"}))
        d, sleeps = make_dispatcher(t, retry_limit=3)
        with self.assertRaises(errors.GenericServiceError) as cm:
            d.send("GET", "/x")
        self.assertEqual(len(t.calls), 4)
        self.assertEqual(len(sleeps), 3)
        self.assertEqual(cm.exception.status_code, 503)
        self.assertEqual(str(cm.exception), "Received error from Dealers League Marine: busy. Code: too_busy")

    def test_wait_sequence_grows_twenty_percent(self):
        t = ScriptedTransport(envelope(503, {"code": "too_busy", "message": "busy"}))
        d, sleeps = make_dispatcher(t, retry_limit=4)
        with self.assertRaises(errors.GenericServiceError):
            d.send("GET", "/x")
        for got, want in zip(sleeps, [10.0, 12.0, 14.4, 17.28]):
            self.assertAlmostEqual(got, want, places=6)

    def test_zero_retry_limit_does_not_sleep(self):
        t = ScriptedTransport(envelope(503, {"code": "too_busy", "message": "busy"}))
        d, sleeps = make_dispatcher(t, retry_limit=0)
        with self.assertRaises(errors.GenericServiceError):
            d.send("GET", "/x")
        self.assertEqual(len(t.calls), 1)
        self.assertEqual(sleeps, [])

    def test_other_errors_are_not_retried(self):
        t = ScriptedTransport(envelope(500, {"code": "oops", "message": "boom"}), envelope(200, {}))
        d, sleeps = make_dispatcher(t)
        with self.assertRaises(errors.GenericServiceError):
            d.send("GET", "/x")
        self.assertEqual(len(t.calls), 1)
        self.assertEqual(sleeps, [])

    def test_transport_errors_propagate_without_retry(self):
        t = mock.Mock()
        t.dispatch.side_effect = errors.TransportError("connection refused")
        d, sleeps = make_dispatcher(t)
        with self.assertRaises(errors.TransportError):
            d.send("GET", "/x")
        self.assertEqual(t.dispatch.call_count, 1)
        self.assertEqual(sleeps, [])

    def test_jitter_only_stretches_actual_sleep(self):
        t = ScriptedTransport(envelope(503, {"code": "too_busy", "message": "busy"}), envelope(200, {}))
        d, sleeps = make_dispatcher(t, retry_jitter=0.5)
        with mock.patch("marine_client.core.dispatcher.random.uniform", return_value=0.25):
            d.send("GET", "/x")
        self.assertAlmostEqual(sleeps[0], 12.5)

    def test_retry_state(self):
        state = RetryState(wait_seconds=10.0)
        state.advance()
        state.advance()
        self.assertEqual(state.attempts_made, 2)
        self.assertAlmostEqual(state.wait_seconds, 14.4)
        self.assertTrue(state.can_retry(3))
        self.assertFalse(state.can_retry(2))


class ResultTests(unittest.TestCase):
    def test_json_success(self):
        t = ScriptedTransport(envelope(200, {"a": 1}))
        d, _ = make_dispatcher(t)
        self.assertEqual(d.send("GET", "/x"), {"a": 1})

    def test_raw_success_returns_text_for_both_flags(self):
        for return_raw in (True, False):
            t = ScriptedTransport(envelope(200, raw=b"plain body"))
            d, _ = make_dispatcher(t)
            self.assertEqual(d.send("GET", "/x", decode_json=False, return_raw=return_raw), "plain body")

    def test_empty_json_body_returns_none(self):
        t = ScriptedTransport(envelope(200, raw=b""))
        d, _ = make_dispatcher(t)
        self.assertIsNone(d.send("GET", "/x"))

    def test_invalid_json_success_is_parsing_error(self):
        t = ScriptedTransport(envelope(200, raw=b"not json"))
        d, _ = make_dispatcher(t)
        with self.assertRaises(errors.ParsingError):
            d.send("GET", "/x")

    def test_not_found_mapped(self):
        t = ScriptedTransport(envelope(404, {"code": "not_found", "message": "missing"}))
        d, _ = make_dispatcher(t)
        with self.assertRaises(errors.ResourceNotFound) as cm:
            d.send("GET", "/x")
        self.assertEqual(str(cm.exception), "Received error from Dealers League Marine: missing. Code: not_found")

    def test_non_200_success_codes_are_errors(self):
        t = ScriptedTransport(envelope(201, {"code": "weird_code", "message": "created"}))
        d, _ = make_dispatcher(t)
        with self.assertRaises(errors.GenericServiceError):
            d.send("POST", "/x")

    def test_resolve_returns_outcome(self):
        t = ScriptedTransport(envelope(400, {"code": "bad_value", "message": "nope"}))
        d, _ = make_dispatcher(t)
        spec = d.build_request("GET", "/x")
        outcome = d.resolve(spec, d.execute(spec))
        self.assertFalse(outcome.ok)
        self.assertIsInstance(outcome.error, errors.InvalidValue)


class CancellationTests(unittest.TestCase):
    def test_cancelled_before_dispatch(self):
        t = ScriptedTransport(envelope(200, {}))
        d, _ = make_dispatcher(t)
        token = CancelToken()
        token.cancel()
        with self.assertRaises(errors.RequestCancelled):
            d.send("GET", "/x", cancel=token)
        self.assertEqual(t.calls, [])

    def test_cancel_interrupts_backoff(self):
        t = ScriptedTransport(envelope(503, {"code": "too_busy", "message": "busy"}))
        d = RequestDispatcher(Credentials("a", "b"), MarineConfig(), t)
        token = mock.Mock(spec=CancelToken)
        token.cancelled = False
        token.wait.return_value = True
        with self.assertRaises(errors.RequestCancelled):
            d.send("GET", "/x", cancel=token)
        token.wait.assert_called_once_with(10.0)
        self.assertEqual(len(t.calls), 1)

    def test_injected_sleep_is_used_with_token(self):
        t = ScriptedTransport(envelope(503, {"code": "too_busy", "message": "busy"}), envelope(200, {}))
        token = CancelToken()
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            token.cancel()

        d = RequestDispatcher(Credentials("a", "b"), MarineConfig(), t, sleep=sleep)
        with self.assertRaises(errors.RequestCancelled):
            d.send("GET", "/x", cancel=token)
        self.assertEqual(sleeps, [10.0])
        self.assertEqual(len(t.calls), 1)

    def test_uncancelled_token_waits_and_retries(self):
        t = ScriptedTransport(envelope(503, {"code": "too_busy", "message": "busy"}), envelope(200, [1, 2]))
        d, _ = make_dispatcher(t, retry_wait_s=0.0)
        self.assertEqual(d.send("GET", "/x", cancel=CancelToken()), [1, 2])
        self.assertEqual(len(t.calls), 2)


if __name__ == "__main__":
    unittest.main()
