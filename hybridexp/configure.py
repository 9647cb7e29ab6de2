"""
Configuration deriver: expand an ExperimentSpec into resolved configs.

The host config is copied from the spec, except that persistent runs install
the host MPI under the persistent directory so later batches reuse it. The
container config additionally gets a deterministic image name, its path in
the install directory and the URL a pre-built image would be pulled from.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Tuple

from hybridexp.config import SystemSettings
from hybridexp.environment import prepare_build_env
from hybridexp.schemas import (
    HYBRID_MODEL,
    BuildEnv,
    ContainerConfig,
    ContainerInfo,
    ExperimentSpec,
    HostConfig,
    ImplementationInfo,
)

logger = logging.getLogger(__name__)

IMAGE_SUFFIX = ".sif"


def container_default_name(distro: str, implementation_id: str, version: str, app_name: str, model: str) -> str:
    """
    Default image name for a distro/MPI/application/model combination.

    Colons in docker-style distro references (ubuntu:20.04) are replaced so
    that the name is a valid file name.
    """
    distro = distro.replace(":", "_")
    return "-".join([distro, implementation_id, version, app_name, model])


def host_install_dir(implementation: ImplementationInfo, settings: SystemSettings) -> Path:
    """Directory of a persistent host install, shared by every batch using that version."""
    return Path(settings.persistent_dir) / f"{implementation.id.lower()}-{implementation.version}"


def image_url(implementation: ImplementationInfo, settings: SystemSettings) -> str:
    """URL of the pre-built image for an implementation in the configured registry."""
    return f"{settings.image_registry}/{implementation.id.lower()}:{implementation.version}"


def derive_configs(spec: ExperimentSpec, settings: SystemSettings) -> Tuple[HostConfig, ContainerConfig]:
    """
    Derive the host and container configurations of an experiment.

    Creates the host and container build/scratch directories as a side effect.

    Args:
        spec: Experiment to configure
        settings: System settings

    Returns:
        (HostConfig, ContainerConfig)

    Raises:
        ConfigurationError: If a required directory cannot be created
    """
    host_env = spec.host_build_env
    if settings.is_persistent:
        host_env = dataclasses.replace(host_env, install_dir=host_install_dir(spec.host_mpi, settings))
    host_cfg = HostConfig(implementation=spec.host_mpi, build_env=host_env)

    container_env = spec.container_build_env
    name = container_default_name(
        spec.container.distro,
        spec.container_mpi.id,
        spec.container_mpi.version,
        spec.app.name,
        HYBRID_MODEL,
    ) + IMAGE_SUFFIX
    container = ContainerInfo(
        name=name,
        path=Path(container_env.install_dir) / name,
        url=image_url(spec.container_mpi, settings),
        build_dir=Path(container_env.build_dir),
        install_dir=Path(container_env.install_dir),
        distro=spec.container.distro,
        model=HYBRID_MODEL,
    )
    container_cfg = ContainerConfig(
        implementation=spec.container_mpi,
        build_env=container_env,
        container=container,
    )

    prepare_build_env(host_cfg.build_env, "host")
    prepare_build_env(container_cfg.build_env, "container")

    _log_configs(host_cfg, container_cfg)
    return host_cfg, container_cfg


def _log_configs(host_cfg: HostConfig, container_cfg: ContainerConfig) -> None:
    host_env: BuildEnv = host_cfg.build_env
    logger.info(
        f"Host MPI: {host_cfg.implementation} (build: {host_env.build_dir}, install: {host_env.install_dir})",
        extra={
            "event": "host_config",
            "metadata": {
                "implementation": host_cfg.implementation.to_dict(),
                "build_env": host_env.to_dict(),
            },
        },
    )
    container = container_cfg.container
    logger.info(
        f"Container MPI: {container_cfg.implementation} on {container.distro} -> {container.path}",
        extra={
            "event": "container_config",
            "metadata": {
                "implementation": container_cfg.implementation.to_dict(),
                "build_env": container_cfg.build_env.to_dict(),
                "image": str(container.path),
                "url": container.url,
            },
        },
    )
