"""Hydra ConfigStore registration utilities."""

from __future__ import annotations

import re
from typing import Any

from hydra.core.config_store import ConfigStore
from loguru import logger


def _default_name(cls_name: str) -> str:
    """``LinearRegressionModel`` -> ``linear_regression``."""
    stem = re.sub(r"Model$", "", cls_name) or cls_name
    return re.sub(r"(?<!^)(?=[A-Z])", "_", stem).lower()


def _infer_group(module: str) -> str:
    """Group from the parent package: ``...models.linear`` -> ``model``."""
    parts = module.split(".")
    package = parts[-2] if len(parts) > 1 else parts[-1]
    return package[:-1] if package.endswith("s") else package


def register(
    cls: type[Any] | None = None,
    *,
    group: str | None = None,
    name: str | None = None,
    **kwargs: Any,
) -> type[Any] | Any:
    """Decorator storing a ``_target_`` config node for a class in Hydra's ConfigStore.

    The node lets a YAML defaults list select the class by name, e.g.
    ``defaults: [{model: linear}]``, and ``hydra.utils.instantiate`` build it.

    Arguments:
        cls: The class to register.
        group: The ConfigStore group. Defaults to the singular parent package name.
        name: The config name. Defaults to the snake-cased class name.
        **kwargs: Default constructor arguments stored in the node.
    """

    def _process_class(target_cls: type[Any]) -> type[Any]:
        config_group = group or _infer_group(target_cls.__module__)
        config_name = name or _default_name(target_cls.__name__)

        node: dict[str, Any] = {
            "_target_": f"{target_cls.__module__}.{target_cls.__qualname__}"
        }
        node.update(kwargs)
        ConfigStore.instance().store(group=config_group, name=config_name, node=node)
        logger.debug(
            f"Registered {target_cls.__name__} as '{config_group}/{config_name}'"
        )
        return target_cls

    if cls is None:
        return _process_class
    return _process_class(cls)
