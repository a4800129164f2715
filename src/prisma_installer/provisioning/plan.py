"""The PRISMA/z88dk installation plan.

Order matters: the toolchain build needs Boost, the profile block points at
the toolchain, and `make tools` needs both the toolchain and the framework.
"""

from __future__ import annotations

from prisma_installer.provisioning.context import RunContext
from prisma_installer.provisioning.environment import (
    ExecutableProbe,
    HeaderProbe,
    PackagePrefix,
)
from prisma_installer.provisioning.workflow.steps import (
    EnsureDirectory,
    FetchRepository,
    InjectProfile,
    InstallPackage,
    RenameExecutable,
    RunBuild,
    Step,
    VerifyHeader,
)

BOOST_HEADER = "boost/graph/adjacency_list.hpp"
PNG_HEADER = "png.h"

TOOLCHAIN_DIR = "z88dk"
PROJECT_DIR = "prisma"
PROJECT_ARCHIVE = "prisma.zip"
TOOLS_STAMP = ".tools-built"


def toolchain_build_env(prefix: PackagePrefix) -> dict[str, str]:
    """Environment for z88dk's build.sh (SDCC included, Boost from the prefix)."""

    return {
        "BUILD_SDCC": "1",
        "BUILD_SDCC_HTTP": "1",
        "BOOST_ROOT": str(prefix.root),
        "CFLAGS": f"-I{prefix.include}",
        "CXXFLAGS": f"-I{prefix.include}",
        "LDFLAGS": f"-L{prefix.lib}",
    }


def dependency_steps() -> list[Step]:
    boost = HeaderProbe(BOOST_HEADER)
    return [
        InstallPackage("make", ExecutableProbe("make")),
        InstallPackage("gcc", ExecutableProbe("gcc")),
        InstallPackage("git", ExecutableProbe("git")),
        InstallPackage("libpng", HeaderProbe(PNG_HEADER), link=True),
        InstallPackage("boost", boost),
        VerifyHeader(boost, package="boost"),
    ]


def build_plan(
    context: RunContext,
    *,
    toolchain_repository: str,
    prisma_repository: str,
) -> list[Step]:
    toolchain = context.install_root / TOOLCHAIN_DIR
    project = context.project_root / PROJECT_DIR

    return [
        *dependency_steps(),
        FetchRepository(
            name="fetch-z88dk",
            target=toolchain,
            url=toolchain_repository,
            recursive=True,
        ),
        RunBuild(
            name="build-z88dk",
            workdir=toolchain,
            command=("./build.sh",),
            creates=toolchain / "bin" / "zcc",
            env=toolchain_build_env(context.package_prefix),
        ),
        InjectProfile(),
        FetchRepository(
            name="fetch-prisma",
            target=project,
            url=prisma_repository,
            archive=context.project_root / PROJECT_ARCHIVE,
        ),
        EnsureDirectory(name="create-build-dir", path=project / "build"),
        RunBuild(
            name="build-prisma-tools",
            workdir=project,
            command=("make", "tools"),
            creates=project / "build" / TOOLS_STAMP,
            stamp=True,
        ),
        # Some z88dk builds ship the preprocessor as zdcpp; PRISMA calls zsdcpp.
        RenameExecutable(
            name="fix-zsdcpp",
            source=toolchain / "bin" / "zdcpp",
            destination=toolchain / "bin" / "zsdcpp",
        ),
    ]
