from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import prune
from pangea.resources.registry import register
from pangea.resources.types import (
    AlarmComparisonOperator,
    AlarmStatistic,
    AwsTags,
    TreatMissingData,
)

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

ANOMALY_DETECTION_FUNCTION = "ANOMALY_DETECTION_BAND"
TRADITIONAL_ONLY_FIELDS = (
    "namespace",
    "period",
    "statistic",
    "extended_statistic",
    "unit",
    "dimensions",
)


class MetricStat(AttributeBlock):
    metric_name: str
    namespace: str
    period: int = Field(gt=0)
    stat: str
    unit: str | None = None
    dimensions: dict[str, str] = Field(default_factory=dict)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "metric_name": self.metric_name,
                "namespace": self.namespace,
                "period": self.period,
                "stat": self.stat,
                "unit": self.unit,
                "dimensions": self.dimensions,
            }
        )


class MetricQuery(AttributeBlock):
    id: str = Field(pattern=r"^[a-z][a-zA-Z0-9_]*$")
    expression: str | None = None
    label: str | None = None
    return_data: bool = False
    metric: MetricStat | None = None

    @model_validator(mode="after")
    def _check_source(self) -> Self:
        if self.expression and self.metric:
            raise ValueError(f"Metric query '{self.id}' cannot have both expression and metric")
        if not self.expression and not self.metric:
            raise ValueError(f"Metric query '{self.id}' must have either expression or metric")
        return self

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "id": self.id,
                "expression": self.expression,
                "label": self.label,
                "return_data": self.return_data,
                "metric": self.metric.to_terraform() if self.metric else None,
            }
        )


class MetricAlarmAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_cloudwatch_metric_alarm"

    alarm_name: str | None = Field(default=None, max_length=255)
    alarm_description: str | None = Field(default=None, max_length=1024)
    comparison_operator: AlarmComparisonOperator
    evaluation_periods: int = Field(ge=1)
    datapoints_to_alarm: int | None = Field(default=None, ge=1)
    actions_enabled: bool = True
    treat_missing_data: TreatMissingData = "missing"
    evaluate_low_sample_count_percentile: str | None = None
    alarm_actions: list[str] = Field(default_factory=list)
    ok_actions: list[str] = Field(default_factory=list)
    insufficient_data_actions: list[str] = Field(default_factory=list)

    metric_name: str | None = None
    namespace: str | None = None
    period: int | None = Field(default=None, gt=0)
    statistic: AlarmStatistic | None = None
    extended_statistic: str | None = None
    unit: str | None = None
    dimensions: dict[str, str] = Field(default_factory=dict)

    threshold: float | None = None
    threshold_metric_id: str | None = None
    metric_query: list[MetricQuery] = Field(default_factory=list)

    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_alarm_mode(self) -> Self:
        if self.metric_query and self.metric_name:
            raise ValueError("Cannot specify both metric_query and metric_name")
        if not self.metric_query and not self.metric_name:
            raise ValueError("Must specify either metric_query or metric_name")
        if self.metric_name:
            self._check_traditional()
        else:
            self._check_metric_math()
        if self.datapoints_to_alarm and self.datapoints_to_alarm > self.evaluation_periods:
            raise ValueError("datapoints_to_alarm cannot be greater than evaluation_periods")
        return self

    def _check_traditional(self) -> None:
        missing = [field for field in ("namespace", "period") if getattr(self, field) is None]
        if missing:
            raise ValueError(f"Traditional alarm requires {' and '.join(missing)}")
        if self.statistic and self.extended_statistic:
            raise ValueError("Cannot specify both statistic and extended_statistic")
        if not self.statistic and not self.extended_statistic:
            raise ValueError("Traditional alarm requires statistic or extended_statistic")
        if self.threshold is None:
            raise ValueError("Traditional alarm requires threshold")

    def _check_metric_math(self) -> None:
        conflicting = [
            field
            for field in TRADITIONAL_ONLY_FIELDS
            if getattr(self, field) not in (None, {})
        ]
        if conflicting:
            raise ValueError(
                f"Metric math alarms cannot specify {', '.join(conflicting)}; "
                "set them on metric_query entries instead"
            )
        if self.threshold is not None and self.threshold_metric_id:
            raise ValueError("Cannot specify both threshold and threshold_metric_id")
        if self.threshold is None and not self.threshold_metric_id:
            raise ValueError("Metric math alarm requires either threshold or threshold_metric_id")
        returning = [query.id for query in self.metric_query if query.return_data]
        if len(returning) != 1:
            raise ValueError(
                "Exactly one metric query must set return_data, "
                f"got {len(returning)}"
            )
        ids = [query.id for query in self.metric_query]
        if len(ids) != len(set(ids)):
            raise ValueError("Metric query ids must be unique")

    @property
    def is_traditional_alarm(self) -> bool:
        return self.metric_name is not None

    @property
    def is_metric_math_alarm(self) -> bool:
        return bool(self.metric_query)

    @property
    def uses_anomaly_detector(self) -> bool:
        return any(
            query.expression and ANOMALY_DETECTION_FUNCTION in query.expression
            for query in self.metric_query
        )

    def to_terraform(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "alarm_name": self.alarm_name,
            "alarm_description": self.alarm_description,
            "comparison_operator": self.comparison_operator,
            "evaluation_periods": self.evaluation_periods,
            "actions_enabled": self.actions_enabled,
            "treat_missing_data": self.treat_missing_data,
            "datapoints_to_alarm": self.datapoints_to_alarm,
            "evaluate_low_sample_count_percentile": self.evaluate_low_sample_count_percentile,
            "alarm_actions": self.alarm_actions,
            "ok_actions": self.ok_actions,
            "insufficient_data_actions": self.insufficient_data_actions,
        }
        if self.is_traditional_alarm:
            body.update(
                {
                    "metric_name": self.metric_name,
                    "namespace": self.namespace,
                    "period": self.period,
                    "statistic": self.statistic,
                    "extended_statistic": self.extended_statistic,
                    "unit": self.unit,
                    "threshold": self.threshold,
                    "dimensions": self.dimensions,
                }
            )
        else:
            body.update(
                {
                    "threshold": self.threshold,
                    "threshold_metric_id": self.threshold_metric_id,
                    "metric_query": [query.to_terraform() for query in self.metric_query],
                }
            )
        body["tags"] = self.tags
        return prune(body)


@register("aws_cloudwatch_metric_alarm")
def aws_cloudwatch_metric_alarm(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        MetricAlarmAttributes,
        name,
        attributes,
        outputs=(
            "id",
            "arn",
            "alarm_name",
            "alarm_description",
            "comparison_operator",
            "evaluation_periods",
            "metric_name",
            "namespace",
            "period",
            "statistic",
            "threshold",
            "treat_missing_data",
        ),
        computed=("is_metric_math_alarm", "is_traditional_alarm", "uses_anomaly_detector"),
    )
