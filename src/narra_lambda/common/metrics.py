"""CloudWatch metrics recorded by every Narra handler.

Each API invocation emits `<Handler>Success` and `<Handler>Failure` (one of them 1, the
other 0) and `<Handler>Duration` in milliseconds, in the `Narra` namespace unless
`POWERTOOLS_METRICS_NAMESPACE` says otherwise.
"""

from datetime import datetime
from typing import Optional

from aibs_informatics_core.utils.os_operations import get_env_var
from aws_lambda_powertools.metrics import Metrics, MetricUnit

from narra_lambda.common.base import HandlerMixins

METRICS_NAMESPACE_ENV_VAR = "POWERTOOLS_METRICS_NAMESPACE"
DEFAULT_METRICS_NAMESPACE = "Narra"


class EnhancedMetrics(Metrics):
    """Powertools metrics with the count, duration and outcome helpers used by handlers."""

    def add_count_metric(self, name: str, value: float):
        self.add_metric(name=name, unit=MetricUnit.Count, value=value)

    def add_duration_metric(
        self, start: datetime, end: Optional[datetime] = None, name: str = ""
    ):
        """Record `<name>Duration`, from `start` to `end` (now by default), in milliseconds."""
        elapsed = (end or datetime.now(start.tzinfo)) - start
        self.add_metric(
            name=f"{name}Duration",
            unit=MetricUnit.Milliseconds,
            value=elapsed.total_seconds() * 1000,
        )

    def add_success_metric(self, name: str = ""):
        self._add_outcome(name, succeeded=True)

    def add_failure_metric(self, name: str = ""):
        self._add_outcome(name, succeeded=False)

    def _add_outcome(self, name: str, succeeded: bool):
        # Both counters are emitted on every call
        self.add_count_metric(f"{name}Success", 1 if succeeded else 0)
        self.add_count_metric(f"{name}Failure", 0 if succeeded else 1)


class MetricsMixins(HandlerMixins):
    """Gives a handler a lazily created `EnhancedMetrics` labelled with its service name."""

    @property
    def metrics(self) -> EnhancedMetrics:
        try:
            return self._metrics
        except AttributeError:
            self.metrics = self.get_metrics(service=self.service_name())
        return self.metrics

    @metrics.setter
    def metrics(self, value: EnhancedMetrics):
        self._metrics = value

    @classmethod
    def get_metrics(
        cls,
        service: Optional[str] = None,
        namespace: Optional[str] = None,
        **additional_dimensions: str,
    ) -> EnhancedMetrics:
        """Create a metrics collector.

        Args:
            service (Optional[str]): Service dimension.
            namespace (Optional[str]): CloudWatch namespace. Falls back to
                `POWERTOOLS_METRICS_NAMESPACE`, then `Narra`.
            **additional_dimensions (str): Extra dimensions added to every metric.
        """
        metrics = EnhancedMetrics(
            service=service,
            namespace=namespace
            or get_env_var(METRICS_NAMESPACE_ENV_VAR, default_value=DEFAULT_METRICS_NAMESPACE),
        )
        for dimension, value in additional_dimensions.items():
            metrics.add_dimension(name=dimension, value=value)
        return metrics
