from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import Field, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import prune
from pangea.resources.registry import register
from pangea.resources.types import AwsTags, HealthCheckProtocol, Port, TargetGroupProtocol

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

APPLICATION_PROTOCOLS = {"HTTP", "HTTPS"}
NETWORK_PROTOCOLS = {"TCP", "TLS", "UDP", "TCP_UDP"}
GENEVE_PORT = 6081
DEFAULT_DEREGISTRATION_DELAY = 300


class TargetGroupHealthCheck(AttributeBlock):
    enabled: bool = True
    interval: int = Field(default=30, ge=5, le=300)
    path: str = "/"
    port: str = "traffic-port"
    protocol: HealthCheckProtocol = "HTTP"
    timeout: int = Field(default=5, ge=2, le=120)
    healthy_threshold: int = Field(default=5, ge=2, le=10)
    unhealthy_threshold: int = Field(default=2, ge=2, le=10)
    matcher: str = "200"

    @model_validator(mode="after")
    def _check_timeout(self) -> Self:
        if self.timeout >= self.interval:
            raise ValueError(
                f"Health check timeout ({self.timeout}) must be less than "
                f"interval ({self.interval})"
            )
        return self


class TargetGroupStickiness(AttributeBlock):
    enabled: bool = False
    type: Literal["lb_cookie", "app_cookie"] = "lb_cookie"
    duration: int = Field(default=86400, ge=1, le=604800)
    cookie_name: str | None = None

    @model_validator(mode="after")
    def _check_cookie_name(self) -> Self:
        if self.type == "app_cookie" and not self.cookie_name:
            raise ValueError("cookie_name is required when stickiness type is 'app_cookie'")
        return self

    def to_terraform(self) -> dict[str, Any]:
        body: dict[str, Any] = {"enabled": self.enabled, "type": self.type}
        if self.type == "lb_cookie":
            body["duration"] = self.duration
        if self.cookie_name:
            body["cookie_name"] = self.cookie_name
        return body


class TargetGroupAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_lb_target_group"

    port: Port
    protocol: TargetGroupProtocol
    vpc_id: str
    name: str | None = Field(default=None, max_length=32)
    name_prefix: str | None = Field(default=None, max_length=6)
    target_type: Literal["instance", "ip", "lambda", "alb"] = "instance"
    deregistration_delay: int = Field(default=DEFAULT_DEREGISTRATION_DELAY, ge=0, le=3600)
    slow_start: int = Field(default=0, ge=0, le=900)
    proxy_protocol_v2: bool = False
    preserve_client_ip: bool | None = None
    ip_address_type: Literal["ipv4", "ipv6"] = "ipv4"
    protocol_version: Literal["HTTP1", "HTTP2", "GRPC"] | None = None
    health_check: TargetGroupHealthCheck | None = None
    stickiness: TargetGroupStickiness | None = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_protocol_rules(self) -> Self:
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        if self.protocol == "GENEVE" and self.port != GENEVE_PORT:
            raise ValueError(f"GENEVE protocol requires port {GENEVE_PORT}")
        if self.protocol_version and self.protocol not in APPLICATION_PROTOCOLS:
            raise ValueError("protocol_version can only be set for HTTP/HTTPS protocols")
        if self.stickiness and self.stickiness.enabled and not self.supports_stickiness:
            raise ValueError("Stickiness can only be enabled for HTTP/HTTPS target groups")
        if (
            self.health_check
            and self.health_check.path != "/"
            and not self.supports_health_check_path
        ):
            raise ValueError("Health check path can only be set for HTTP/HTTPS target groups")
        return self

    @property
    def supports_stickiness(self) -> bool:
        return self.protocol in APPLICATION_PROTOCOLS

    @property
    def supports_health_check_path(self) -> bool:
        return self.protocol in APPLICATION_PROTOCOLS

    @property
    def is_network_load_balancer(self) -> bool:
        return self.protocol in NETWORK_PROTOCOLS

    def _health_check_block(self) -> dict[str, Any] | None:
        hc = self.health_check
        if hc is None:
            return None
        block: dict[str, Any] = {"enabled": hc.enabled, "interval": hc.interval}
        if self.supports_health_check_path:
            block["path"] = hc.path
        block.update(
            {
                "port": hc.port,
                "protocol": hc.protocol,
                "timeout": hc.timeout,
                "healthy_threshold": hc.healthy_threshold,
                "unhealthy_threshold": hc.unhealthy_threshold,
            }
        )
        if self.supports_health_check_path:
            block["matcher"] = hc.matcher
        return block

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "name": self.name,
                "name_prefix": self.name_prefix if not self.name else None,
                "port": self.port,
                "protocol": self.protocol,
                "vpc_id": self.vpc_id,
                "target_type": self.target_type if self.target_type != "instance" else None,
                "deregistration_delay": (
                    self.deregistration_delay
                    if self.deregistration_delay != DEFAULT_DEREGISTRATION_DELAY
                    else None
                ),
                "slow_start": self.slow_start or None,
                "proxy_protocol_v2": self.proxy_protocol_v2 or None,
                "preserve_client_ip": self.preserve_client_ip,
                "ip_address_type": self.ip_address_type if self.ip_address_type != "ipv4" else None,
                "protocol_version": self.protocol_version,
                "health_check": self._health_check_block(),
                "stickiness": (
                    self.stickiness.to_terraform()
                    if self.stickiness and self.supports_stickiness
                    else None
                ),
                "tags": self.tags,
            }
        )


@register("aws_lb_target_group")
def aws_lb_target_group(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        TargetGroupAttributes,
        name,
        attributes,
        outputs=(
            "id",
            "arn",
            "arn_suffix",
            "name",
            "port",
            "protocol",
            "vpc_id",
            "target_type",
            "health_check",
            "stickiness",
        ),
        computed=(
            "supports_stickiness",
            "supports_health_check_path",
            "is_network_load_balancer",
        ),
    )
