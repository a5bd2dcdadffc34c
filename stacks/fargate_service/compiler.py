"""Compiles a service spec into its resource graph."""

import logging

from .assembler import assemble
from .containers import compile_container_definitions
from .identity import build_identity
from .load_balancer import build_alb_integration
from .network import build_network
from .resources import ServiceGraph
from .spec import DeploymentContext, ServiceSpec
from .validation import ServiceSpecValidator

logger = logging.getLogger(__name__)


def compile_service(spec: ServiceSpec, context: DeploymentContext) -> ServiceGraph:
    """
    Validate a service spec and derive its complete resource graph.

    Compilation is pure: the same spec and context always yield an equal graph.

    Args:
        spec: Service spec as supplied by the caller
        context: Deployment account and region

    Returns:
        The resource graph

    Raises:
        ServiceSpecValidationError: If the spec is invalid, no graph is produced
    """
    normalized = ServiceSpecValidator.validate(spec)

    identity = build_identity(normalized, context)
    network = build_network(normalized)
    container_definitions = compile_container_definitions(normalized.containers, context)
    alb_artifacts = build_alb_integration(normalized, network)

    graph = assemble(identity, network, container_definitions, alb_artifacts, normalized)

    logger.info(
        f"Compiled service '{graph.namespace}': {len(graph.resources)} resources, "
        f"{len(graph.edges)} explicit dependencies"
    )
    return graph
