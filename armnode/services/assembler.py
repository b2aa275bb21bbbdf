from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Sequence

from armnode.models import (
    CONTENT_VERSION,
    TEMPLATE_SCHEMA,
    DeploymentBody,
    DeploymentBodyProperties,
    DeploymentMode,
    DeploymentTemplate,
    ResourceDefinition,
)
from .validator import TemplateValidator

logger = logging.getLogger(__name__)


def assemble_template(
    resources: Sequence[ResourceDefinition],
    variables: Dict[str, str],
    parameters: Optional[Dict[str, Any]] = None,
    outputs: Optional[Dict[str, Any]] = None,
) -> DeploymentTemplate:
    """
    Wrap resources and their variables into one deployment template.
    Raises TemplateValidationError if any symbolic reference does not resolve.
    """
    template = DeploymentTemplate(
        schema_=TEMPLATE_SCHEMA,
        contentVersion=CONTENT_VERSION,
        parameters=dict(parameters or {}),
        variables=dict(variables),
        resources=list(resources),
        outputs=outputs,
    )
    validation = TemplateValidator.ensure_valid(template)
    for warning in validation["warnings"]:
        logger.warning(warning)
    return template


def build_deployment_body(
    template: DeploymentTemplate,
    mode: DeploymentMode = DeploymentMode.INCREMENTAL,
    parameters: Optional[Dict[str, Any]] = None,
) -> DeploymentBody:
    return DeploymentBody(
        properties=DeploymentBodyProperties(
            template=template,
            mode=mode,
            parameters=dict(parameters or {}),
        )
    )
