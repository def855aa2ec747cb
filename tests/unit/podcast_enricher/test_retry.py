#!/usr/bin/env python3
"""Tests for bounded retry with exponential backoff."""

import unittest
from unittest.mock import call, Mock, patch

import pytest

from podcast_enricher.utils.retry import backoff_delay, retry_with_exponential_backoff

pytestmark = pytest.mark.unit


class TestBackoffDelay(unittest.TestCase):
    def test_doubles(self):
        self.assertEqual([backoff_delay(n, 0.5) for n in range(3)], [0.5, 1.0, 2.0])

    def test_capped(self):
        self.assertEqual(backoff_delay(5, 0.5, max_delay=3.0), 3.0)


@patch("podcast_enricher.utils.retry.time.sleep")
class TestRetryWithExponentialBackoff(unittest.TestCase):
    """Test the retry loop."""

    def test_success_first_try(self, mock_sleep):
        func = Mock(return_value="ok")
        self.assertEqual(retry_with_exponential_backoff(func), "ok")
        func.assert_called_once()
        mock_sleep.assert_not_called()

    def test_success_after_failures(self, mock_sleep):
        func = Mock(side_effect=[ValueError("a"), ValueError("b"), "ok"])
        result = retry_with_exponential_backoff(func, max_attempts=3, initial_delay=0.5)
        self.assertEqual(result, "ok")
        self.assertEqual(mock_sleep.call_args_list, [call(0.5), call(1.0)])

    def test_exhaustion_raises_last_error_without_final_sleep(self, mock_sleep):
        func = Mock(side_effect=[ValueError("a"), ValueError("b"), ValueError("c")])
        with self.assertRaises(ValueError) as context:
            retry_with_exponential_backoff(func, max_attempts=3, initial_delay=0.5)
        self.assertEqual(str(context.exception), "c")
        self.assertEqual(func.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    def test_non_retryable_propagates_immediately(self, mock_sleep):
        func = Mock(side_effect=KeyError("boom"))
        with self.assertRaises(KeyError):
            retry_with_exponential_backoff(func, retryable_exceptions=(ValueError,))
        func.assert_called_once()
        mock_sleep.assert_not_called()

    def test_invalid_attempts(self, mock_sleep):
        with self.assertRaises(ValueError):
            retry_with_exponential_backoff(Mock(), max_attempts=0)
