"""
Policy registry and evaluation.

Policies are stored per declared outcome type, in registration order. To
evaluate an outcome the registry collects every policy whose type the outcome
is an instance of and runs them in global registration order (regardless of
which type they were registered for), stopping at the first one that returns
True. Each evaluation is rendered as a single diagnostic message
listing every candidate policy with its verdict.

Registration is expected to finish before concurrent ``invoke`` calls start;
evaluation only reads the registry.
"""

from collections.abc import Mapping
from types import MappingProxyType

from http_resilience.exceptions import ConfigurationError
from http_resilience.log import Logger, LogLevel
from http_resilience.options import EvaluationLoggingOptions
from http_resilience.policies.base import RetryPolicy, RetryPolicyDelegate, _type_name


class RetryPolicyRegistry:
    """
    Ordered mapping from outcome type to the policies registered for it.

    Attributes:
        logger: Sink receiving evaluation diagnostics
        logging_options: Check marks used in diagnostics
        prefix: Prepended to every diagnostic message
    """

    def __init__(
        self,
        logger: Logger,
        logging_options: EvaluationLoggingOptions | None = None,
        prefix: str = "",
    ):
        self.logger = logger
        self.logging_options = logging_options or EvaluationLoggingOptions()
        self.prefix = prefix
        self._policies: dict[type, list[RetryPolicy]] = {}
        # Every policy in registration order, across all outcome types
        self._ordered: list[RetryPolicy] = []

    @property
    def policies(self) -> Mapping[type, tuple[RetryPolicy, ...]]:
        """Read-only view of the registered policies."""
        return MappingProxyType({key: tuple(value) for key, value in self._policies.items()})

    def add(self, policy: RetryPolicy) -> None:
        """
        Register ``policy`` under its declared parameter type.

        Raises:
            ConfigurationError: If policy is None, or a policy of the same
                concrete class is already registered for that type
                (delegates are exempt)
        """
        if policy is None:
            raise ConfigurationError("policy must not be None", {"argument": "policy"})

        key = policy.parameter_type
        registered = self._policies.setdefault(key, [])
        if not isinstance(policy, RetryPolicyDelegate) and any(type(p) is type(policy) for p in registered):
            raise ConfigurationError(
                f"{policy.name} is already registered for {_type_name(key)}",
                {"policy": policy.name, "parameter_type": _type_name(key)},
            )
        registered.append(policy)
        self._ordered.append(policy)

    def matching(self, outcome: object) -> list[RetryPolicy]:
        """Policies whose declared type ``outcome`` is an instance of, in registration order."""
        return [policy for policy in self._ordered if isinstance(outcome, policy.parameter_type)]

    def evaluate(self, outcome: object) -> bool:
        """
        Decide whether ``outcome`` should be retried.

        Returns False for None. A policy that raises counts as a non-match.
        """
        if outcome is None:
            return False

        candidates = self.matching(outcome)
        verdicts: list[bool | None] = [None] * len(candidates)
        should_retry = False

        for index, policy in enumerate(candidates):
            try:
                verdicts[index] = bool(policy.should_retry(outcome))
            except Exception as e:
                verdicts[index] = False
                self.logger.log(
                    LogLevel.WARNING,
                    f"{self.prefix}{policy.name} raised {type(e).__name__} during evaluation: {e}",
                )
            if verdicts[index]:
                should_retry = True
                break

        self._log_evaluation(outcome, candidates, verdicts)
        return should_retry

    def _log_evaluation(
        self,
        outcome: object,
        candidates: list[RetryPolicy],
        verdicts: list[bool | None],
    ) -> None:
        marks = self.logging_options
        if not marks.enabled:
            return

        lines = [
            f"{self.prefix}EvaluateRetryPolicies for {type(outcome).__name__} "
            f"({len(candidates)} {'policy' if len(candidates) == 1 else 'policies'})"
        ]
        for policy, verdict in zip(candidates, verdicts):
            if verdict is None:
                mark = marks.not_evaluated
            else:
                mark = marks.should_retry if verdict else marks.should_not_retry
            lines.append(f"  {mark} {policy!r}")
        self.logger.log(LogLevel.DEBUG, "\n".join(lines))
