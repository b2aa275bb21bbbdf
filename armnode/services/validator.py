"""
Validation service for deployment templates
Checks referential completeness of the resource graph before anything is submitted
"""

import re
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from armnode.exceptions import TemplateValidationError
from armnode.models import STORAGE_ACCOUNTS, DeploymentTemplate, ResourceDefinition

VARIABLE_RE = re.compile(r"variables\('([^']+)'\)")
RESOURCE_ID_RE = re.compile(r"resourceId\('([^']+)',\s*variables\('([^']+)'\)\)")
NAME_VARIABLE_RE = re.compile(r"^\[variables\('([^']+)'\)\]$")
CONCAT_DEPENDENCY_RE = re.compile(r"^\[concat\('([^']+)/',\s*variables\('([^']+)'\)\)\]$")
RESOURCE_ID_DEPENDENCY_RE = re.compile(r"^\[resourceId\('([^']+)',\s*variables\('([^']+)'\)\)\]$")

ResourceKey = Tuple[str, str]


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for v in value.values():
            yield from _strings(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from _strings(v)


def resource_key(resource: ResourceDefinition) -> ResourceKey:
    """(type, name variable) for symbolic names, (type, literal name) otherwise."""
    m = NAME_VARIABLE_RE.match(resource.name)
    return (resource.type, m.group(1) if m else resource.name)


def parse_dependency(entry: str) -> Optional[ResourceKey]:
    for pattern in (CONCAT_DEPENDENCY_RE, RESOURCE_ID_DEPENDENCY_RE):
        m = pattern.match(entry.strip())
        if m:
            return (m.group(1), m.group(2))
    if not entry.startswith("[") and "/" in entry:
        resource_type, name = entry.rsplit("/", 1)
        return (resource_type, name)
    return None


class TemplateValidator:
    """Validates deployment templates and returns warnings/errors"""

    # Common storage account names that are likely taken
    COMMON_STORAGE_NAMES = [
        "test", "storage", "mystorage", "teststorage", "stor", "data",
        "files", "blob", "container", "backup", "archive"
    ]

    # Variable expansion depth when following variables that reference other variables
    MAX_EXPANSION_DEPTH = 8

    @staticmethod
    def _expand(text: str, variables: Dict[str, str], depth: int = 0, seen: Optional[Set[str]] = None) -> Iterator[str]:
        """Yield `text` and every variable value it (transitively) references."""
        seen = set() if seen is None else seen
        yield text
        if depth >= TemplateValidator.MAX_EXPANSION_DEPTH:
            return
        for name in VARIABLE_RE.findall(text):
            if name in seen or name not in variables:
                continue
            seen.add(name)
            yield from TemplateValidator._expand(variables[name], variables, depth + 1, seen)

    @staticmethod
    def _storage_name_findings(name: str, errors: List[str], warnings: List[str], suggestions: List[str]):
        if name.startswith("["):
            return
        lower = name.lower()
        if len(lower) < 3:
            errors.append(
                f"Storage account '{name}' is too short ({len(lower)} chars). "
                f"Minimum length is 3 characters."
            )
        elif len(lower) < 8:
            warnings.append(
                f"Storage account '{name}' is very short. "
                f"Short names are more likely to be taken globally."
            )
            suggestions.append(f"Try: '{name}' with a longer node name or a random suffix")
        if len(lower) > 24:
            errors.append(
                f"Storage account '{name}' is too long ({len(lower)} chars). "
                f"Maximum length is 24 characters."
            )
        if not re.match(r'^[a-z0-9]+$', name):
            errors.append(
                f"Storage account '{name}' contains invalid characters. "
                f"Storage account names must be lowercase letters and numbers only."
            )
        if lower in TemplateValidator.COMMON_STORAGE_NAMES:
            warnings.append(
                f"Storage account '{name}' uses a very common name. "
                f"Storage account names must be globally unique across all Azure."
            )

    @staticmethod
    def validate(template: DeploymentTemplate) -> Dict[str, Any]:
        """
        Validate a deployment template

        Returns:
            {
                "valid": bool,
                "errors": List[str],
                "warnings": List[str],
                "suggestions": List[str]
            }
        """
        errors: List[str] = []
        warnings: List[str] = []
        suggestions: List[str] = []
        variables = template.variables

        # Duplicate (type, name) pairs
        keys = [resource_key(r) for r in template.resources]
        duplicates = sorted({f"{t}/{n}" for t, n in keys if keys.count((t, n)) > 1})
        if duplicates:
            errors.append(
                f"Duplicate resources found: {', '.join(duplicates)}. "
                f"Each resource must have a unique type and name."
            )
        siblings = set(keys)
        name_variables = {name: (t, name) for t, name in keys}

        # Variables referencing undefined variables
        for var_name, value in variables.items():
            for ref in VARIABLE_RE.findall(value):
                if ref not in variables:
                    errors.append(f"Variable '{var_name}' references undefined variable '{ref}'")

        for resource, key in zip(template.resources, keys):
            label = f"'{resource.name}' ({resource.type})"
            wire = resource.to_wire()

            for text in _strings(wire):
                for ref in VARIABLE_RE.findall(text):
                    if ref not in variables:
                        errors.append(f"Resource {label} references undefined variable '{ref}'")

            edges: Set[ResourceKey] = set()
            for entry in resource.dependsOn or []:
                dep = parse_dependency(entry)
                if dep is None:
                    errors.append(f"Resource {label} has an unparseable dependsOn entry: {entry}")
                elif dep not in siblings:
                    errors.append(
                        f"Resource {label} depends on '{dep[0]}/{dep[1]}' which is not declared in the template"
                    )
                else:
                    edges.add(dep)

            # Anything the properties point at inside this template needs a dependsOn edge
            referenced: Set[ResourceKey] = set()
            for text in _strings(wire.get("properties", {})):
                for expanded in TemplateValidator._expand(text, variables):
                    for t, name in RESOURCE_ID_RE.findall(expanded):
                        if (t, name) in siblings:
                            referenced.add((t, name))
                    for name in VARIABLE_RE.findall(expanded):
                        if name in name_variables:
                            referenced.add(name_variables[name])
            referenced.discard(key)
            for t, name in sorted(referenced - edges):
                errors.append(
                    f"Resource {label} references '{t}/{name}' in its properties without a dependsOn edge"
                )

            if resource.type == STORAGE_ACCOUNTS:
                TemplateValidator._storage_name_findings(
                    variables.get(key[1], key[1]), errors, warnings, suggestions
                )

        return {
            "valid": len(errors) == 0,
            "errors": errors,
            "warnings": warnings,
            "suggestions": suggestions
        }

    @staticmethod
    def ensure_valid(template: DeploymentTemplate) -> Dict[str, Any]:
        result = TemplateValidator.validate(template)
        if not result["valid"]:
            raise TemplateValidationError(result["errors"])
        return result
