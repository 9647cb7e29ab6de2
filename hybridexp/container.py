"""
Container provisioning: make the experiment's image available.

Decision table:

    build privilege or nopriv | image exists | action
    --------------------------+--------------+--------------------------------
    true                      | true         | skip
    true                      | false        | definition file + image build
    false                     | any          | pull pre-built image

A half-built image is left in place on failure for inspection.
"""

import logging
from pathlib import Path
from typing import Callable

from hybridexp.builders.registry import BuilderRegistry
from hybridexp.config import SystemSettings, ToolConfig
from hybridexp.errors import BuildError, PullError
from hybridexp.schemas import AppInfo, ContainerConfig, ContainerInfo, ExecutionResult, ImplementationInfo
from hybridexp.tools.singularity import SingularityAdapter

logger = logging.getLogger(__name__)

STAGE = "provisioning_container"

# (container, implementation, settings, tool) -> None, raises on failure
ImagePuller = Callable[[ContainerInfo, ImplementationInfo, SystemSettings, ToolConfig], None]


def pull_image(
    container: ContainerInfo,
    implementation: ImplementationInfo,
    settings: SystemSettings,
    tool: ToolConfig,
) -> None:
    """
    Pull the pre-built image of an implementation into the container path.

    Raises:
        RuntimeError: If the pull fails
    """
    Path(container.install_dir).mkdir(parents=True, exist_ok=True)
    logger.info(
        f"Pulling {container.url} to {container.path}",
        extra={"stage": STAGE, "event": "image_pull", "metadata": {"url": container.url}},
    )
    result = SingularityAdapter(settings).pull(container.path, container.url)
    if result.failed:
        raise RuntimeError(str(result.error)) from result.error


def create_image(
    app: AppInfo,
    container_cfg: ContainerConfig,
    settings: SystemSettings,
    registry: BuilderRegistry,
) -> ExecutionResult:
    """
    Build a new image: load the builder, write the definition file, build.

    Returns:
        ExecutionResult whose error is a BuildError on failure
    """
    res = ExecutionResult()

    try:
        builder = registry.load(container_cfg.implementation)
    except Exception as e:
        res.error = BuildError(STAGE, f"unable to load a builder: {e}")
        res.error.__cause__ = e
        return res

    logger.info(
        f"Creating container {container_cfg.container.name}...",
        extra={"stage": STAGE, "event": "image_build_started"},
    )
    try:
        builder.generate_definition_file(
            app,
            container_cfg.implementation,
            container_cfg.build_env,
            container_cfg.container,
            settings,
        )
    except Exception as e:
        res.stderr = f"failed to generate Singularity definition file: {e}"
        logger.error(res.stderr, extra={"stage": STAGE, "event": "deffile_failed"})
        res.error = BuildError(STAGE, res.stderr)
        res.error.__cause__ = e
        return res

    try:
        builder.create_image(container_cfg.container, settings)
    except Exception as e:
        res.stderr = f"failed to create container image: {e}"
        logger.error(res.stderr, extra={"stage": STAGE, "event": "image_build_failed"})
        res.error = BuildError(STAGE, res.stderr)
        res.error.__cause__ = e
        return res

    res.returncode = 0
    return res


def provision_image(
    app: AppInfo,
    container_cfg: ContainerConfig,
    settings: SystemSettings,
    registry: BuilderRegistry,
    puller: ImagePuller = pull_image,
) -> ExecutionResult:
    """
    Make the container image of an experiment available.

    Args:
        app: Application compiled in the image
        container_cfg: Resolved container configuration
        settings: System settings (privilege flags)
        registry: Builder registry used when building
        puller: Image puller used without build privilege

    Returns:
        ExecutionResult; error is a BuildError or PullError on failure
    """
    container = container_cfg.container
    can_build = settings.tool.build_privilege or settings.nopriv

    if can_build:
        if Path(container.path).exists():
            logger.info(
                f"{container.path} already exists, skipping build",
                extra={"stage": STAGE, "event": "image_exists", "metadata": {"path": str(container.path)}},
            )
            return ExecutionResult(returncode=0)
        return create_image(app, container_cfg, settings, registry)

    res = ExecutionResult()
    try:
        puller(container, container_cfg.implementation, settings, settings.tool)
    except Exception as e:
        res.error = PullError(STAGE, f"failed to pull container: {e}")
        res.error.__cause__ = e
        return res

    res.returncode = 0
    return res
