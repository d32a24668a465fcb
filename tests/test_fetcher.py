import unittest
from unittest import mock

import requests
from urllib3.exceptions import ReadTimeoutError

from awardpool.extraction.fetcher import (
    REASON_PARSE_ERROR,
    REASON_TIMEOUT,
    REASON_UNREACHABLE,
    SourceFetcher,
)
from awardpool.ingestion.source_types import SOURCE_KIND_FEED, SOURCE_KIND_HTML


HTML = b"<html><body><article><h2>Best Picture</h2><ul><li>Oppenheimer</li></ul></article></body></html>"

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Cinema</title><link>https://example.com</link>
<item><title>Oscar 2025: indicados a Melhor Filme - Oppenheimer, Barbie</title><link>https://example.com/1</link></item>
</channel></rss>"""


def fake_response(status=200, body=b"", reason="OK"):
    resp = mock.MagicMock()
    resp.status_code = status
    resp.reason = reason
    resp.encoding = "utf-8"
    resp.iter_content.return_value = [body]
    return resp


class TestSourceFetcher(unittest.TestCase):
    def setUp(self):
        self.sleeps = []
        self.fetcher = SourceFetcher(retry_backoff=0.5, sleep=self.sleeps.append)

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_upgrades_to_https_and_parses_html(self, get):
        get.return_value = fake_response(body=HTML)
        r = self.fetcher.fetch("http://example.com/oscars", SOURCE_KIND_HTML)
        self.assertTrue(r.ok)
        self.assertEqual(r.url, "https://example.com/oscars")
        self.assertEqual(get.call_args[0][0], "https://example.com/oscars")
        self.assertEqual(r.document.find("h2").get_text(), "Best Picture")

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_parses_feed(self, get):
        get.return_value = fake_response(body=RSS)
        r = self.fetcher.fetch("https://example.com/feed.xml", SOURCE_KIND_FEED)
        self.assertTrue(r.ok)
        self.assertEqual(len(r.document.entries), 1)

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_http_status_is_classified_without_retry(self, get):
        get.return_value = fake_response(status=500, reason="Server Error")
        r = self.fetcher.fetch("https://example.com/a", SOURCE_KIND_HTML)
        self.assertFalse(r.ok)
        self.assertEqual(r.failure.reason, "http_status:500")
        self.assertEqual(r.status_code, 500)
        self.assertEqual(get.call_count, 1)
        get.return_value.close.assert_called_once_with()
        self.assertEqual(self.sleeps, [])

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_timeout_retries_exactly_once(self, get):
        get.side_effect = requests.Timeout("read timed out")
        r = self.fetcher.fetch("https://example.com/a", SOURCE_KIND_HTML)
        self.assertEqual(r.failure.reason, REASON_TIMEOUT)
        self.assertEqual(get.call_count, 2)
        self.assertEqual(self.sleeps, [0.5])

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_stalled_body_is_timeout(self, get):
        stalled = fake_response()
        stalled.iter_content.side_effect = requests.ConnectionError(
            ReadTimeoutError(None, "https://example.com/a", "Read timed out.")
        )
        get.return_value = stalled
        r = self.fetcher.fetch("https://example.com/a", SOURCE_KIND_HTML)
        self.assertEqual(r.failure.reason, REASON_TIMEOUT)
        self.assertEqual(get.call_count, 2)
        self.assertEqual(self.sleeps, [0.5])
        self.assertEqual(stalled.close.call_count, 2)

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_transient_error_then_success(self, get):
        get.side_effect = [requests.ConnectionError("reset"), fake_response(body=HTML)]
        r = self.fetcher.fetch("https://example.com/a", SOURCE_KIND_HTML)
        self.assertTrue(r.ok)
        self.assertEqual(get.call_count, 2)

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_connection_error_is_unreachable(self, get):
        get.side_effect = requests.ConnectionError("name resolution failed")
        r = self.fetcher.fetch("https://nowhere.invalid/", SOURCE_KIND_HTML)
        self.assertEqual(r.failure.reason, REASON_UNREACHABLE)
        self.assertEqual(get.call_count, 2)

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_unparseable_feed_is_parse_error(self, get):
        get.return_value = fake_response(body=b"just some words, no markup at all")
        r = self.fetcher.fetch("https://example.com/feed", SOURCE_KIND_FEED)
        self.assertEqual(r.failure.reason, REASON_PARSE_ERROR)

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_empty_body_is_parse_error(self, get):
        get.return_value = fake_response(body=b"   ")
        r = self.fetcher.fetch("https://example.com/a", SOURCE_KIND_HTML)
        self.assertEqual(r.failure.reason, REASON_PARSE_ERROR)

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_oversized_body_is_parse_error(self, get):
        get.return_value = fake_response(body=b"x" * 64)
        fetcher = SourceFetcher(max_bytes=10, sleep=self.sleeps.append)
        r = fetcher.fetch("https://example.com/a", SOURCE_KIND_HTML)
        self.assertEqual(r.failure.reason, REASON_PARSE_ERROR)
        self.assertEqual(r.failure.detail, "too_large")
        get.return_value.close.assert_called_once_with()

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_blocks_localhost_and_private_ips(self, get):
        for url in ("http://localhost:1234/", "http://127.0.0.1:1234/", "https://192.168.0.10/x"):
            r = self.fetcher.fetch(url, SOURCE_KIND_HTML)
            self.assertEqual(r.failure.reason, REASON_UNREACHABLE, url)
        get.assert_not_called()

    @mock.patch("awardpool.extraction.fetcher.requests.get")
    def test_blocks_non_http_scheme(self, get):
        r = self.fetcher.fetch("file:///etc/passwd", SOURCE_KIND_HTML)
        self.assertEqual(r.failure.reason, REASON_UNREACHABLE)
        self.assertEqual(r.failure.detail, "bad_scheme")
        get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
