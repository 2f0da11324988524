"""Unit tests for the retrying request executor."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from .errors import NotFoundError, RateLimitedError, RetriesExhaustedError, StatusError, TransientError
from .executor import RequestExecutor, is_rate_limited
from .models import ApiResponse, Page, RateLimit

T0 = 1_700_000_000.0


@pytest.fixture
def clock():
    """Fake time: sleeping advances the clock instantly."""
    now = [T0]

    def fake_sleep(seconds):
        now[0] += seconds

    with (
        patch("github_repo_explorer.executor.time.time", side_effect=lambda: now[0]),
        patch("github_repo_explorer.executor.time.sleep", side_effect=fake_sleep) as sleep,
    ):
        yield SimpleNamespace(now=now, sleep=sleep)


def _ok(body=None):
    return ApiResponse(status=200, body=body)


def _status(status, message=None):
    return ApiResponse(status=status, body={"message": message}, message=message)


def _rate_limited(reset_at, status=403):
    return ApiResponse(
        status=status,
        body={"message": "API rate limit exceeded"},
        rate=RateLimit(remaining=0, limit=5000, reset_at=reset_at),
        message="API rate limit exceeded",
    )


def _sequence(*outcomes):
    """Operation returning (or raising) each outcome in turn; records its call count."""
    calls = []

    def operation():
        outcome = outcomes[len(calls)]
        calls.append(outcome)
        if callable(outcome):
            outcome = outcome()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    operation.calls = calls
    return operation


def describe_RequestExecutor():
    def describe_terminal_statuses():
        def it_returns_first_successful_response(clock):
            op = _sequence(_ok({"id": 1}))

            result = RequestExecutor().run(op)

            assert result.body == {"id": 1}
            assert len(op.calls) == 1
            clock.sleep.assert_not_called()

        def it_treats_204_as_success(clock):
            op = _sequence(ApiResponse(status=204, body=None))

            assert RequestExecutor().run(op).status == 204

        def it_raises_not_found_on_404_without_retrying(clock):
            op = _sequence(_status(404, "Not Found"), _ok())

            with pytest.raises(NotFoundError):
                RequestExecutor().run(op)

            assert len(op.calls) == 1

        def it_accepts_pages_as_responses(clock):
            op = _sequence(Page(items=[1, 2], next_page=2))

            assert RequestExecutor().run(op).items == [1, 2]

    def describe_retries():
        def it_retries_unexpected_statuses(clock):
            op = _sequence(_status(502), _status(500), _ok("done"))

            result = RequestExecutor(retries=5).run(op)

            assert result.body == "done"
            assert len(op.calls) == 3

        def it_backs_off_exponentially_from_one_second(clock):
            op = _sequence(_status(500), _status(500), _status(500), _ok())

            RequestExecutor(retries=5).run(op)

            assert [c.args[0] for c in clock.sleep.call_args_list] == [1.0, 2.0, 4.0]

        def it_retries_transient_errors(clock):
            op = _sequence(TransientError("connection reset"), _ok("ok"))

            assert RequestExecutor().run(op).body == "ok"
            assert len(op.calls) == 2

        def it_aggregates_every_error_when_exhausted(clock):
            op = _sequence(_status(500), TransientError("timeout"), _status(503))

            with pytest.raises(RetriesExhaustedError) as excinfo:
                RequestExecutor(retries=3).run(op)

            errors = excinfo.value.errors
            assert len(errors) == 3
            assert isinstance(errors[0], StatusError) and errors[0].status == 500
            assert isinstance(errors[1], TransientError)
            assert errors[2].status == 503
            assert "3 attempts failed" in str(excinfo.value)

        def it_does_not_sleep_after_the_last_attempt(clock):
            op = _sequence(_status(500), _status(500))

            with pytest.raises(RetriesExhaustedError):
                RequestExecutor(retries=2).run(op)

            assert clock.sleep.call_count == 1

        def it_lets_the_call_override_the_budget(clock):
            op = _sequence(*[_status(500)] * 7, _ok())

            result = RequestExecutor(retries=2).run(op, retries=10)

            assert result.status == 200
            assert len(op.calls) == 8

        def it_treats_403_without_rate_limit_as_failure(clock):
            op = _sequence(_status(403, "Resource not accessible"), _ok())

            RequestExecutor().run(op)

            assert clock.sleep.call_args_list[0].args[0] == 1.0

        def it_propagates_unexpected_exceptions(clock):
            op = _sequence(KeyError("boom"))

            with pytest.raises(KeyError):
                RequestExecutor().run(op)

    def describe_rate_limits():
        def it_waits_until_reset_then_succeeds_on_third_attempt(clock):
            # Each failed attempt reports a reset 2 seconds after it happened
            op = _sequence(
                lambda: _rate_limited(clock.now[0] + 2),
                lambda: _rate_limited(clock.now[0] + 2),
                _ok("finally"),
            )

            result = RequestExecutor().run(op)

            assert result.body == "finally"
            assert len(op.calls) == 3
            assert clock.now[0] >= T0 + 4

        def it_does_not_count_rate_limits_against_the_budget(clock):
            op = _sequence(
                lambda: _rate_limited(clock.now[0] + 2),
                lambda: _rate_limited(clock.now[0] + 2),
                lambda: _rate_limited(clock.now[0] + 2),
                _ok(),
            )

            result = RequestExecutor(retries=1).run(op)

            assert result.status == 200

        def it_handles_429(clock):
            op = _sequence(lambda: _rate_limited(clock.now[0] + 3, status=429), _ok())

            RequestExecutor().run(op)

            assert clock.now[0] >= T0 + 3

        def it_handles_rate_limited_error(clock):
            op = _sequence(lambda: RateLimitedError(clock.now[0] + 5), _ok())

            RequestExecutor().run(op)

            assert clock.now[0] >= T0 + 5
            assert len(op.calls) == 2

        def it_waits_base_delay_when_reset_already_passed(clock):
            op = _sequence(_rate_limited(T0 - 10), _ok())

            RequestExecutor(base_delay=1.0).run(op)

            clock.sleep.assert_called_once_with(1.0)

        def it_never_spins_on_stale_resets(clock):
            stale = [_rate_limited(T0 - 1, status=429) for _ in range(50)]
            op = _sequence(*stale, _ok())

            result = RequestExecutor(retries=1, base_delay=1.0).run(op)

            assert result.status == 200
            assert clock.sleep.call_count == 50
            assert clock.now[0] >= T0 + 50

        def it_waits_base_delay_when_reset_unknown(clock):
            op = _sequence(_rate_limited(None), _ok())

            RequestExecutor(base_delay=1.0).run(op)

            clock.sleep.assert_called_once_with(1.0)

        def it_counts_rate_limit_hits(clock):
            executor = RequestExecutor()
            executor.run(_sequence(lambda: _rate_limited(clock.now[0] + 1), _ok()))

            assert executor.rate_limit_hits == 1

    def describe_observer():
        def it_sees_every_response(clock):
            seen = []
            responses = [_status(500), _rate_limited(T0 - 1), _ok()]
            executor = RequestExecutor(observer=seen.append)

            executor.run(_sequence(*responses))

            assert seen == responses

        def it_is_not_called_without_a_response(clock):
            seen = []
            executor = RequestExecutor(observer=seen.append)

            executor.run(_sequence(TransientError("reset"), _ok()))

            assert len(seen) == 1
            assert None not in seen

        def it_sees_404_before_not_found_is_raised(clock):
            seen = []

            with pytest.raises(NotFoundError):
                RequestExecutor(observer=seen.append).run(_sequence(_status(404)))

            assert [r.status for r in seen] == [404]


def describe_is_rate_limited():
    def it_detects_exhausted_quota():
        assert is_rate_limited(_rate_limited(T0))

    def it_detects_secondary_limit_message():
        response = ApiResponse(
            status=403,
            body={},
            rate=RateLimit(remaining=4000),
            message="You have exceeded a secondary rate limit",
        )
        assert is_rate_limited(response)

    def it_ignores_success_with_zero_remaining():
        assert not is_rate_limited(ApiResponse(status=200, body=[], rate=RateLimit(remaining=0)))

    def it_ignores_plain_forbidden():
        assert not is_rate_limited(_status(403, "Forbidden"))
