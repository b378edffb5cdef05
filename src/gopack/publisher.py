"""
Publish orchestration for gopack.

`publish` runs one linear pass:

    validate inputs -> read go.mod -> escape paths -> plan .zip ->
    create @v directory -> write .mod -> write .info -> write .zip -> update list

The archive is planned and checked before anything is written, so an invalid
tree leaves the output untouched. A later I/O failure aborts the run with files
already written for this version left in place; rerunning overwrites them.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from . import semver
from .archive import plan_archive, write_archive
from .config import (
    AT_V_DIR,
    FILE_MODE,
    INFO_SUFFIX,
    LIST_FILE_NAME,
    MOD_SUFFIX,
    ZIP_SUFFIX,
    PublishConfig,
    PublishResult,
)
from .descriptor import write_descriptor
from .errors import InvalidVersion, MissingFlag, OutputWriteError
from .escape import escape_path, escape_version
from .listfile import update_list_file
from .modfile import read_manifest
from .utils import ensure_dir, write_file


def validate_inputs(config: PublishConfig) -> None:
    """Check required inputs before touching the filesystem.

    Raises:
        MissingFlag: If src, version or out is empty.
        InvalidVersion: If the version is not a full semantic version.
    """
    missing = [
        name
        for name, value in (("-src", config.src), ("-version", config.version), ("-out", config.out))
        if not value or not str(value).strip()
    ]
    if missing:
        raise MissingFlag(f"required flags: -src, -version, -out (missing {', '.join(missing)})")

    if not semver.is_valid(config.version):
        raise InvalidVersion(f"invalid version {config.version!r} (want semver like v1.2.3)")


def publish(config: PublishConfig, now: datetime | None = None) -> PublishResult:
    """Publish one module version into a proxy directory tree.

    Args:
        config: Publish inputs.
        now: Timestamp recorded in the `.info` file; defaults to the current UTC time.

    Returns:
        A `PublishResult` naming every file written (or, on a dry run, every
        file that would be written).

    Raises:
        GopackError: Any validation, manifest, escaping, archive or I/O failure.
    """
    validate_inputs(config)

    src_dir = Path(str(config.src)).resolve()
    out_dir = Path(str(config.out))
    manifest = read_manifest(src_dir)
    module_path = manifest.module_path

    esc_path = escape_path(module_path)
    esc_version = escape_version(config.version)

    at_v = out_dir / Path(*esc_path.split("/")) / AT_V_DIR
    mod_file = at_v / f"{esc_version}{MOD_SUFFIX}"
    info_file = at_v / f"{esc_version}{INFO_SUFFIX}"
    zip_file = at_v / f"{esc_version}{ZIP_SUFFIX}"
    list_file = at_v / LIST_FILE_NAME

    plan = plan_archive(
        src_dir,
        module_path,
        config.version,
        respect_gitignore=config.respect_gitignore,
        exclude_globs=config.exclude_globs,
    )

    result = PublishResult(
        module_path=module_path,
        version=config.version,
        escaped_path=esc_path,
        escaped_version=esc_version,
        mod_file=mod_file,
        info_file=info_file,
        zip_file=zip_file,
        list_file=list_file,
        archive=plan,
        dry_run=config.dry_run,
    )
    if config.dry_run:
        return result

    try:
        ensure_dir(at_v)
    except OSError as e:
        raise OutputWriteError(f"create {at_v}: {e}") from e

    try:
        write_file(mod_file, manifest.data, FILE_MODE)
    except OSError as e:
        raise OutputWriteError(f"write {mod_file}: {e}") from e

    write_descriptor(info_file, config.version, now)
    write_archive(plan, zip_file)
    result.list_update = update_list_file(at_v, config.version)

    return result
