# tests/test_policies.py
# Pytest-Suite für die Einzelsignale: Rate-Limit, Fehlerquote, Latenz-Drift, Risiko
from __future__ import annotations

import pytest

from advisor.models import RateLimitSnapshot, RiskLevel, TrafficObservation
from advisor.policies.failure_policy import FailurePolicy
from advisor.policies.latency_policy import LatencyPolicy
from advisor.policies.rate_limit_policy import RateLimitPolicy, carries_rate_limit_headers
from advisor.policies.risk_policy import RiskPolicy

NOW_MS = 1_700_000_000_000


# ─── Hilfsfunktionen ────────────────────────────────────────────────────────


def make_observation(
    status_code: int = 200,
    response_time: int = 100,
    headers: dict[str, str] | None = None,
    method: str = "GET",
    endpoint: str = "/api/test",
) -> TrafficObservation:
    """Test-Beobachtung erstellen."""
    return TrafficObservation(
        endpoint=endpoint,
        method=method,
        timestamp=NOW_MS,
        response_time=response_time,
        status_code=status_code,
        headers=headers or {},
    )


def with_statuses(statuses: list[int]) -> list[TrafficObservation]:
    return [make_observation(status_code=s) for s in statuses]


def with_latencies(latencies: list[int]) -> list[TrafficObservation]:
    return [make_observation(response_time=ms) for ms in latencies]


# ─── RateLimitPolicy Tests ───────────────────────────────────────────────────


class TestRateLimitPolicy:
    def setup_method(self):
        self.policy = RateLimitPolicy()

    def test_defaults_without_headers(self):
        """Keine Rate-Limit-Header → limit=100, remaining=100, reset=now+60000."""
        snapshot = self.policy.snapshot([make_observation()], NOW_MS)
        assert snapshot == RateLimitSnapshot(limit=100, remaining=100, reset=NOW_MS + 60_000)

    def test_defaults_for_empty_slice(self):
        snapshot = self.policy.snapshot([], NOW_MS)
        assert (snapshot.limit, snapshot.remaining) == (100, 100)

    def test_parses_x_ratelimit_headers(self):
        obs = make_observation(headers={
            "x-ratelimit-limit": "1000",
            "x-ratelimit-remaining": "42",
            "x-ratelimit-reset": "1700000099000",
        })
        snapshot = self.policy.snapshot([obs], NOW_MS)
        assert snapshot.limit == 1000
        assert snapshot.remaining == 42
        assert snapshot.reset == 1_700_000_099_000

    def test_parses_unprefixed_headers(self):
        """ratelimit-* ohne x-Präfix wird ebenfalls erkannt."""
        obs = make_observation(headers={"ratelimit-limit": "60", "ratelimit-remaining": "7"})
        snapshot = self.policy.snapshot([obs], NOW_MS)
        assert (snapshot.limit, snapshot.remaining) == (60, 7)

    def test_remaining_only_unprefixed_is_recognized(self):
        """Nur ratelimit-remaining vorhanden → Beobachtung trägt Rate-Limit-Info."""
        obs = make_observation(headers={"ratelimit-remaining": "3"})
        assert carries_rate_limit_headers(obs) is True
        assert self.policy.snapshot([obs], NOW_MS).remaining == 3

    def test_x_prefixed_wins_over_unprefixed(self):
        """x-ratelimit-remaining: 5 hat Vorrang vor ratelimit-remaining: 50."""
        obs = make_observation(headers={
            "x-ratelimit-remaining": "5",
            "ratelimit-remaining": "50",
        })
        assert self.policy.snapshot([obs], NOW_MS).remaining == 5

    def test_header_names_are_case_insensitive(self):
        obs = make_observation(headers={"X-RateLimit-Limit": "200", "X-RateLimit-Remaining": "10"})
        snapshot = self.policy.snapshot([obs], NOW_MS)
        assert (snapshot.limit, snapshot.remaining) == (200, 10)

    def test_most_recent_observation_with_headers_is_used(self):
        """Die letzte Beobachtung MIT Headern zählt: spätere ohne Header werden übersprungen."""
        observations = [
            make_observation(headers={"x-ratelimit-remaining": "90"}),
            make_observation(headers={"x-ratelimit-remaining": "20"}),
            make_observation(),
        ]
        assert self.policy.snapshot(observations, NOW_MS).remaining == 20

    def test_malformed_field_falls_back_individually(self):
        """Fehlerhafter limit-Wert verwirft remaining und reset nicht."""
        obs = make_observation(headers={
            "x-ratelimit-limit": "abc",
            "x-ratelimit-remaining": "12",
            "x-ratelimit-reset": "1700000005000",
        })
        snapshot = self.policy.snapshot([obs], NOW_MS)
        assert snapshot.limit == 100
        assert snapshot.remaining == 12
        assert snapshot.reset == 1_700_000_005_000

    def test_malformed_reset_uses_default_reset(self):
        obs = make_observation(headers={"x-ratelimit-limit": "10", "x-ratelimit-reset": "soon"})
        assert self.policy.snapshot([obs], NOW_MS).reset == NOW_MS + 60_000

    @pytest.mark.parametrize("raw", ["1_0", "١٢", "1.5", "+5", "0x10", "12abc"])
    def test_non_decimal_values_use_default(self, raw):
        """Nur ASCII-Dezimalzahlen zählen als gültig; alles andere → Standardwert."""
        obs = make_observation(headers={"x-ratelimit-limit": raw, "x-ratelimit-remaining": raw})
        snapshot = self.policy.snapshot([obs], NOW_MS)
        assert (snapshot.limit, snapshot.remaining) == (100, 100)

    def test_surrounding_whitespace_is_tolerated(self):
        obs = make_observation(headers={"x-ratelimit-remaining": " 42 "})
        assert self.policy.snapshot([obs], NOW_MS).remaining == 42

    def test_empty_value_falls_through_to_next_candidate(self):
        """Leerer x-ratelimit-limit → ratelimit-limit wird verwendet."""
        obs = make_observation(headers={"x-ratelimit-limit": "", "ratelimit-limit": "30"})
        assert self.policy.snapshot([obs], NOW_MS).limit == 30

    def test_zero_remaining_is_a_valid_value(self):
        obs = make_observation(headers={"x-ratelimit-remaining": "0"})
        assert self.policy.snapshot([obs], NOW_MS).remaining == 0

    def test_reset_header_alone_is_not_recognized(self):
        """Nur x-ratelimit-reset → keine Rate-Limit-Info."""
        obs = make_observation(headers={"x-ratelimit-reset": "1700000005000"})
        assert self.policy.has_rate_limit_headers([obs]) is False
        assert self.policy.snapshot([obs], NOW_MS).reset == NOW_MS + 60_000


# ─── FailurePolicy Tests ─────────────────────────────────────────────────────


class TestFailurePolicy:
    def setup_method(self):
        self.policy = FailurePolicy()

    def test_empty_slice_predicts_no_failure(self):
        """Keine Daten → keine Fehlervorhersage."""
        assert self.policy.predict_failure([]) is False

    def test_error_rate_of_empty_slice_is_zero(self):
        assert self.policy.error_rate([]) == 0.0

    def test_exactly_thirty_percent_is_not_failure(self):
        """3 von 10 Fehlern = 30% → nicht strikt > 30% → False."""
        statuses = [500, 500, 500] + [200] * 7
        assert self.policy.predict_failure(with_statuses(statuses)) is False

    def test_forty_percent_is_failure(self):
        """4 von 10 Fehlern = 40% → True."""
        statuses = [404, 500, 503, 429] + [200] * 6
        assert self.policy.predict_failure(with_statuses(statuses)) is True

    def test_status_399_is_not_an_error(self):
        assert self.policy.error_rate(with_statuses([399, 400])) == 0.5

    def test_recent_errors_trigger_failure(self):
        """Fenster 20% Fehler, aber letzte 10 mit 6 Fehlern (60%) → True."""
        statuses = [200] * 20 + [500] * 6 + [200] * 4
        observations = with_statuses(statuses)
        assert self.policy.error_rate(observations) == pytest.approx(0.2)
        assert self.policy.predict_failure(observations) is True

    def test_recent_exactly_half_is_not_failure(self):
        """Letzte 10 mit genau 50% Fehlern → nicht strikt > 50%."""
        statuses = [200] * 20 + [500, 200] * 5
        assert self.policy.predict_failure(with_statuses(statuses)) is False

    def test_short_slice_recent_window(self):
        """Weniger als 10 Beobachtungen: der Trend umfasst den ganzen Ausschnitt."""
        assert self.policy.predict_failure(with_statuses([500, 500, 200])) is True
        assert self.policy.predict_failure(with_statuses([500, 200, 200, 200])) is False


# ─── LatencyPolicy Tests ─────────────────────────────────────────────────────


class TestLatencyPolicy:
    def setup_method(self):
        self.policy = LatencyPolicy()

    def test_fewer_than_five_samples_never_degraded(self):
        """< 5 Messungen → kein Signal, auch bei extremen Werten."""
        assert self.policy.is_degraded(with_latencies([10, 10, 10, 9000])) is False

    def test_average_of_empty_slice_is_zero(self):
        assert self.policy.average_latency([]) == 0.0

    def test_stable_latency_not_degraded(self):
        assert self.policy.is_degraded(with_latencies([100] * 10)) is False

    def test_recent_doubling_is_degraded(self):
        """Letzte 5 deutlich über 2× Fensterdurchschnitt → True."""
        latencies = [100] * 15 + [1000] * 5
        assert self.policy.is_degraded(with_latencies(latencies)) is True

    def test_single_outlier_can_trigger(self):
        """Ein einzelner Ausreißer unter den letzten 5 reicht aus (grobe Heuristik)."""
        latencies = [100] * 15 + [100, 100, 100, 100, 2000]
        # Fenster: (19*100 + 2000)/20 = 195; letzte 5: 480 > 390
        assert self.policy.is_degraded(with_latencies(latencies)) is True

    def test_exactly_five_samples_never_degraded(self):
        """Bei genau 5 Messungen sind beide Durchschnitte identisch."""
        assert self.policy.is_degraded(with_latencies([1, 1, 1, 1, 5000])) is False

    def test_all_zero_latency_not_degraded(self):
        """0 > 0 ist False: kein Signal bei durchgehend 0 ms."""
        assert self.policy.is_degraded(with_latencies([0] * 8)) is False


# ─── RiskPolicy Tests ────────────────────────────────────────────────────────


class TestRiskPolicy:
    def setup_method(self):
        self.policy = RiskPolicy()

    @pytest.mark.parametrize(
        "signals, expected",
        [
            ((False, False, False), RiskLevel.LOW),
            ((True, False, False), RiskLevel.MEDIUM),
            ((False, True, False), RiskLevel.MEDIUM),
            ((False, False, True), RiskLevel.MEDIUM),
            ((True, True, False), RiskLevel.HIGH),
            ((False, True, True), RiskLevel.HIGH),
            ((True, True, True), RiskLevel.HIGH),
        ],
    )
    def test_risk_level_by_signal_count(self, signals, expected):
        """0 Signale → low, 1 → medium, >= 2 → high (keine Gewichtung)."""
        assert self.policy.risk_level(*signals) == expected

    def test_rate_limit_approaching_below_threshold(self):
        """remaining 79 < 100 × 80 / 100 → True."""
        snapshot = RateLimitSnapshot(limit=100, remaining=79, reset=NOW_MS)
        assert self.policy.is_rate_limit_approaching(snapshot) is True

    def test_rate_limit_not_approaching_at_threshold(self):
        """remaining 80 == 80 → nicht strikt kleiner → False."""
        snapshot = RateLimitSnapshot(limit=100, remaining=80, reset=NOW_MS)
        assert self.policy.is_rate_limit_approaching(snapshot) is False

    def test_custom_threshold(self):
        policy = RiskPolicy(rate_limit_threshold=10)
        snapshot = RateLimitSnapshot(limit=100, remaining=50, reset=NOW_MS)
        assert policy.is_rate_limit_approaching(snapshot) is False

    def test_confidence_grows_with_data(self):
        assert self.policy.confidence([], False) == 0
        assert self.policy.confidence([make_observation()] * 3, False) == 30

    def test_confidence_capped_at_95(self):
        """10 Beobachtungen ohne Header → 95, nicht 100."""
        assert self.policy.confidence([make_observation()] * 10, False) == 95

    def test_confidence_bonus_applied_after_cap(self):
        """Kappung VOR dem Bonus: 95 + 5 = 100, keine erneute Kappung auf 95."""
        assert self.policy.confidence([make_observation()] * 20, True) == 100
        assert self.policy.confidence([make_observation()] * 2, True) == 25

    def test_alternatives_v1_endpoint_get(self):
        """/v1/users/ ohne Basis-URL, ein GET → v2, cached, fallback in dieser Reihenfolge."""
        alternatives = self.policy.suggest_alternatives(
            "/v1/users/", [make_observation(endpoint="/v1/users/")]
        )
        assert alternatives == [
            "/v2/users/",
            "/v1/users/?cached=true",
            "/v1/users?fallback=true",
        ]

    def test_alternatives_only_first_v1_replaced(self):
        alternatives = self.policy.suggest_alternatives("/v1/proxy/v1/items", [])
        assert alternatives[0] == "/v2/proxy/v1/items"

    def test_alternatives_with_api_url(self):
        """Basis-URL ohne abschließenden Slash + Endpunkt."""
        policy = RiskPolicy(api_url="https://api.example.com/")
        alternatives = policy.suggest_alternatives("/users", [])
        assert alternatives == ["https://api.example.com/users", "/users?cached=true"]

    def test_alternatives_without_traffic_only_cached(self):
        assert self.policy.suggest_alternatives("/users", []) == ["/users?cached=true"]

    def test_alternatives_first_method_decides_fallback(self):
        """Nur die Methode der ERSTEN Beobachtung zählt."""
        observations = [make_observation(method="POST"), make_observation(method="GET")]
        alternatives = self.policy.suggest_alternatives("/users", observations)
        assert "/users?fallback=true" not in alternatives

    def test_alternatives_are_not_deduplicated(self):
        """Keine Deduplizierung: v2-Vorschlag und Basis-URL-Vorschlag bleiben beide erhalten."""
        policy = RiskPolicy(api_url="https://api.example.com")
        alternatives = policy.suggest_alternatives("/v1/a/", [make_observation()])
        assert alternatives == [
            "/v2/a/",
            "https://api.example.com/v1/a/",
            "/v1/a/?cached=true",
            "/v1/a?fallback=true",
        ]
