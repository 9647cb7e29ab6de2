"""
Singularity definition files for the hybrid packaging model.

In the hybrid model MPI is compiled inside the image and the host MPI
launches the ranks; the container MPI must therefore be ABI compatible with
the host one.
"""

from pathlib import PurePosixPath
from typing import Sequence
from urllib.parse import urlparse

from hybridexp.schemas import AppInfo, ImplementationInfo

APT_DISTROS = ("ubuntu", "debian")
YUM_DISTROS = ("centos", "rockylinux", "almalinux", "fedora", "rhel")

APT_PACKAGES = "build-essential curl ca-certificates bzip2 file perl"
YUM_PACKAGES = "gcc gcc-c++ make curl bzip2 tar file perl"

ARCHIVE_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz", ".tgz", ".tar")

DEFINITION_TEMPLATE = """\
Bootstrap: docker
From: {distro}

%environment
    export MPI_DIR={prefix}
    export PATH=$MPI_DIR/bin:$PATH
    export LD_LIBRARY_PATH=$MPI_DIR/lib:$LD_LIBRARY_PATH

%post
    {package_install}
    mkdir -p /tmp/mpi && cd /tmp/mpi
    curl -fsSL -o {tarball} {url}
    tar -xf {tarball} && cd {source_dir}
    ./configure --prefix={prefix} {configure_flags}
    make -j$(nproc) install
    export PATH={prefix}/bin:$PATH
    export LD_LIBRARY_PATH={prefix}/lib:$LD_LIBRARY_PATH
{app_section}    cd / && rm -rf /tmp/mpi

%labels
    hybridexp.mpi.id {mpi_id}
    hybridexp.mpi.version {mpi_version}
    hybridexp.app {app_name}
    hybridexp.model hybrid
"""


def package_install_command(distro: str) -> str:
    """
    Shell command installing the build toolchain for a distro.

    Raises:
        ValueError: If the distro family is not supported
    """
    family = distro.split(":", 1)[0].split("/")[-1].lower()
    if family in APT_DISTROS:
        return f"apt-get update && DEBIAN_FRONTEND=noninteractive apt-get install -y {APT_PACKAGES}"
    if family in YUM_DISTROS:
        return f"yum install -y {YUM_PACKAGES}"
    raise ValueError(f"unsupported distro: {distro}")


def tarball_name(url: str) -> str:
    """File name of the archive referenced by url."""
    name = PurePosixPath(urlparse(url).path).name
    if not name:
        raise ValueError(f"cannot determine archive name from URL: {url}")
    return name


def source_dir_name(tarball: str) -> str:
    """Directory an archive unpacks to, by the usual <name>-<version> convention."""
    for suffix in ARCHIVE_SUFFIXES:
        if tarball.endswith(suffix):
            return tarball[:-len(suffix)]
    return tarball


def render_definition(
    distro: str,
    implementation: ImplementationInfo,
    app: AppInfo,
    prefix: str,
    configure_flags: Sequence[str] = (),
) -> str:
    """
    Render a hybrid model definition file.

    Args:
        distro: Docker base image (e.g. ubuntu:20.04)
        implementation: MPI compiled in the image
        app: Application compiled in the image
        prefix: MPI installation prefix inside the image
        configure_flags: Extra flags for MPI's configure

    Raises:
        ValueError: If the distro is unsupported or the MPI URL is missing
    """
    if not implementation.url:
        raise ValueError(f"no source URL for {implementation}")

    tarball = tarball_name(implementation.url)
    return DEFINITION_TEMPLATE.format(
        distro=distro,
        prefix=prefix,
        package_install=package_install_command(distro),
        tarball=tarball,
        url=implementation.url,
        source_dir=source_dir_name(tarball),
        configure_flags=" ".join(configure_flags),
        app_section=_app_section(app),
        mpi_id=implementation.id,
        mpi_version=implementation.version,
        app_name=app.name,
    )


def _app_section(app: AppInfo) -> str:
    lines = []
    if app.source or app.install_cmd:
        lines.append("mkdir -p /opt/app && cd /opt/app")
    if app.source:
        lines.append(f"curl -fsSL -O {app.source}")
    if app.install_cmd:
        lines.append(app.install_cmd)
    return "".join(f"    {line}\n" for line in lines)
