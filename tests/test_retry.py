import pytest

from yrly.retry import DEFAULT_ATTEMPTS, Unrecoverable, retry


class Flaky:
    def __init__(self, failures, result="done"):
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"failure {self.calls}")
        return self.result


def test_returns_value_on_first_success_without_retry_callback():
    seen = []
    func = Flaky(0)
    assert retry(func, 3, 0, lambda n, e: seen.append(n)) == "done"
    assert func.calls == 1
    assert seen == []


def test_retries_until_success():
    seen = []
    func = Flaky(2)
    assert retry(func, 5, 0, lambda n, e: seen.append((n, str(e)))) == "done"
    assert func.calls == 3
    assert seen == [(0, "failure 1"), (1, "failure 2")]


def test_raises_last_error_after_all_attempts():
    seen = []
    func = Flaky(10)
    with pytest.raises(RuntimeError, match="failure 4"):
        retry(func, 4, 0, lambda n, e: seen.append(n))
    assert func.calls == 4
    assert seen == [0, 1, 2, 3]


def test_unrecoverable_stops_immediately_and_unwraps():
    seen = []
    calls = []

    def func():
        calls.append(1)
        raise Unrecoverable(KeyError("stop"))

    with pytest.raises(KeyError):
        retry(func, 5, 0, lambda n, e: seen.append(n))
    assert len(calls) == 1
    assert seen == []


def test_default_attempts_are_used():
    func = Flaky(100)
    with pytest.raises(RuntimeError):
        retry(func, delay=0)
    assert func.calls == DEFAULT_ATTEMPTS


def test_zero_attempts_rejected():
    with pytest.raises(ValueError):
        retry(Flaky(0), 0, 0)