"""Validation and defaulting of Fargate service specs."""

import dataclasses
import logging
import re
from collections import Counter
from typing import List

from stacks.common.exceptions import ServiceSpecValidationError

from .constants import (
    DEFAULT_CPU,
    DEFAULT_MEMORY,
    MAX_NAMESPACE_LENGTH,
    NAMESPACE_PATTERN,
    MAX_PORT,
    MAX_RULE_PRIORITY,
    MIN_PORT,
    MIN_RULE_PRIORITY,
    VALID_CPU_MEMORY_COMBINATIONS,
)
from .spec import SecretSource, ServiceSpec

logger = logging.getLogger(__name__)


class ServiceSpecValidator:
    """Validates a service spec before any resource is described."""

    @staticmethod
    def apply_defaults(spec: ServiceSpec) -> ServiceSpec:
        """
        Return a copy of the spec with `cpu`, `memory` and `namespace` resolved.

        The namespace defaults to `<name>-<stage>`, or just `<name>` without a stage.

        Args:
            spec: Spec as supplied by the caller

        Returns:
            A new spec, the caller's spec is left untouched
        """
        namespace = spec.namespace
        if not namespace:
            namespace = f"{spec.name}-{spec.stage}" if spec.stage else spec.name

        return dataclasses.replace(
            spec,
            cpu=spec.cpu if spec.cpu is not None else DEFAULT_CPU,
            memory=spec.memory if spec.memory is not None else DEFAULT_MEMORY,
            namespace=namespace,
            containers=tuple(spec.containers),
            subnet_ids=tuple(spec.subnet_ids),
        )

    @staticmethod
    def collect_violations(spec: ServiceSpec) -> List[str]:
        """
        Check a spec with defaults applied and return every violation found.

        Args:
            spec: Fully resolved spec

        Returns:
            Violation messages, empty when the spec is valid
        """
        errors: List[str] = []

        if (spec.cpu, spec.memory) not in VALID_CPU_MEMORY_COMBINATIONS:
            errors.append(
                f"CPU: {spec.cpu} and Memory: {spec.memory} is an unsupported combination, see "
                f"https://docs.aws.amazon.com/AmazonECS/latest/developerguide/AWS_Fargate.html "
                f"for valid combinations"
            )

        if not spec.containers:
            errors.append("At least one container is required")

        if not spec.subnet_ids:
            errors.append("At least one subnet ID is required")

        if spec.desired_count < 0:
            errors.append(f"Desired count cannot be negative, got {spec.desired_count}")

        sum_of_cpu = sum(c.cpu for c in spec.containers if c.cpu)
        if sum_of_cpu > spec.cpu:
            errors.append(
                f"Sum of CPU allocation for all containers {sum_of_cpu} exceeds the CPU limit "
                f"set for the task {spec.cpu} ({sum_of_cpu} > {spec.cpu})"
            )

        sum_of_memory = sum(c.memory for c in spec.containers if c.memory)
        if sum_of_memory > spec.memory:
            errors.append(
                f"Sum of memory allocation for all containers {sum_of_memory} exceeds the memory "
                f"limit set for the task {spec.memory} ({sum_of_memory} > {spec.memory})"
            )

        # Namespace - anything longer means the target group physical name would exceed
        # the 32 character limit
        if len(spec.namespace) > MAX_NAMESPACE_LENGTH:
            errors.append(
                f'Namespace cannot be longer than {MAX_NAMESPACE_LENGTH} characters. '
                f'"{spec.namespace}" is {len(spec.namespace)} characters'
            )

        if not re.match(NAMESPACE_PATTERN, spec.namespace):
            errors.append(
                f'Namespace "{spec.namespace}" may only contain letters, digits and hyphens, '
                f'and must start and end with a letter or digit'
            )

        name_counts = Counter(c.name for c in spec.containers)
        for name, count in name_counts.items():
            if count > 1:
                errors.append(f'Container name "{name}" is used by {count} containers, names must be unique')

        for container in spec.containers:
            for mapping in container.port_mappings:
                if not MIN_PORT <= mapping.container_port <= MAX_PORT:
                    errors.append(
                        f'Container "{container.name}" port must be between {MIN_PORT} and '
                        f'{MAX_PORT}, got {mapping.container_port}'
                    )
            for secret in container.secrets:
                if secret.json_key and secret.source is not SecretSource.SECRETS_MANAGER:
                    errors.append(
                        f'Secret "{secret.name}" of container "{container.name}" sets a JSON key, '
                        f'which is only supported for {SecretSource.SECRETS_MANAGER.value} secrets'
                    )

        alb = spec.alb_integration
        if alb is not None:
            if alb.rule_priority is not None and not MIN_RULE_PRIORITY <= alb.rule_priority <= MAX_RULE_PRIORITY:
                errors.append(
                    f"Listener rule priority must be between {MIN_RULE_PRIORITY} and "
                    f"{MAX_RULE_PRIORITY} (inclusive), got {alb.rule_priority}"
                )

            if alb.port_mapping.container_name not in name_counts:
                errors.append(
                    f'ALB port mapping references container "{alb.port_mapping.container_name}" '
                    f'which is not defined. Defined containers: {sorted(name_counts)}'
                )

            if not MIN_PORT <= alb.port_mapping.container_port <= MAX_PORT:
                errors.append(
                    f"ALB port mapping port must be between {MIN_PORT} and {MAX_PORT}, "
                    f"got {alb.port_mapping.container_port}"
                )

        return errors

    @classmethod
    def validate(cls, spec: ServiceSpec) -> ServiceSpec:
        """
        Apply defaults and validate a service spec.

        Args:
            spec: Spec as supplied by the caller

        Returns:
            The normalized spec

        Raises:
            ServiceSpecValidationError: With every violation, if any rule fails
        """
        normalized = cls.apply_defaults(spec)
        errors = cls.collect_violations(normalized)

        if errors:
            logger.error(f"Service spec '{normalized.namespace}' failed validation with {len(errors)} violation(s)")
            raise ServiceSpecValidationError(errors, service_name=spec.name)

        logger.debug(f"Service spec '{normalized.namespace}' passed validation")
        return normalized
