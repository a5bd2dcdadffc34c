"""
Load Balancer Logging Mixin

Enables access logging for Application Load Balancers into an existing bucket.

See https://docs.aws.amazon.com/elasticloadbalancing/latest/application/enable-access-logging.html
"""

from typing import Optional

from aws_cdk import (
    aws_s3 as s3,
    aws_elasticloadbalancingv2 as elbv2,
)

from ..constants import DEFAULT_ALB_LOG_PREFIX


class LoadBalancerLoggingMixin:
    """
    Mixin class that configures load balancer access logging.

    The bucket is owned outside the stack; its policy must already allow the
    regional ELB account to write.
    """

    def configure_alb_logging(
        self,
        load_balancer: elbv2.ApplicationLoadBalancer,
        bucket_name: str,
        prefix: Optional[str] = None
    ) -> s3.IBucket:
        """
        Configure access logging for an Application Load Balancer.

        Args:
            load_balancer: The ALB to configure logging for
            bucket_name: Name of the existing S3 bucket receiving the logs
            prefix: S3 prefix for the access logs

        Returns:
            The imported bucket
        """
        access_logs_bucket = s3.Bucket.from_bucket_name(
            self,
            "alb-access-logs-bucket",
            bucket_name
        )

        load_balancer.log_access_logs(
            bucket=access_logs_bucket,
            prefix=prefix or DEFAULT_ALB_LOG_PREFIX
        )
        return access_logs_bucket
