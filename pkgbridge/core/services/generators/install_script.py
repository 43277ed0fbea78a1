"""
Install script generator — produce an Intune Win32 PowerShell script.

One template per source. The generated script, on the target machine:

    1. checks the package manager support file exists   (else exit 1)
    2. creates the log folder if missing                 (idempotent)
    3. installs the package non-interactively by id
    4. exits with the installer's code on failure, 0 on success
    5. turns any exception into one ERROR line + exit 1

Generation is pure: the same record always yields the same bytes,
and nothing is written to disk here (see ``script_store``).
"""

from __future__ import annotations

import re

from pkgbridge.core.models.package import PackageRecord, PackageSource
from pkgbridge.core.models.settings import ScriptPaths
from pkgbridge.core.models.template import GeneratedFile


DEFAULT_PATHS = ScriptPaths()


_WINGET_TEMPLATE = """\
# ============================================================
# Winget-Install Intune Win32 App - TEMPLATE
# Package: @@NAME@@
# ID: @@ID@@
# Version: @@VERSION@@
# Log: @@LOG_DIR@@
# ============================================================

$ErrorActionPreference = 'Stop'

# Winget-AutoUpdate install helper
$WAUScript = '@@SUPPORT_PATH@@'

if (-not (Test-Path -LiteralPath $WAUScript)) {
    Write-Output "ERROR: Winget-Install.ps1 not found at $WAUScript"
    exit 1
}

# Log folder
$LogFolder = '@@LOG_DIR@@'
if (-not (Test-Path -LiteralPath $LogFolder)) {
    New-Item -ItemType Directory -Path $LogFolder -Force | Out-Null
}

# AppID to install
$AppID = '@@ID@@'

try {
    $Process = Start-Process -FilePath "$env:WINDIR\\System32\\WindowsPowerShell\\v1.0\\powershell.exe" -ArgumentList @(
        '-ExecutionPolicy', 'Bypass',
        '-NoProfile',
        '-NonInteractive',
        '-File', "`"$WAUScript`"",
        '-AppIDs', $AppID,
        '-LogPath', "`"$LogFolder`""
    ) -Wait -PassThru -NoNewWindow

    if ($Process.ExitCode -ne 0) {
        Write-Output "ERROR: Winget-Install.ps1 returned exit code $($Process.ExitCode)"
        exit $Process.ExitCode
    }
}
catch {
    Write-Output "ERROR: Exception caught - $_"
    exit 1
}

exit 0
"""

_CHOCO_TEMPLATE = """\
# ============================================================
# Chocolatey-Install Intune Win32 App - TEMPLATE
# Package: @@NAME@@
# ID: @@ID@@
# Version: @@VERSION@@
# Log: @@LOG_DIR@@
# ============================================================

$ErrorActionPreference = 'Stop'

# Chocolatey executable
$ChocoPath = '@@SUPPORT_PATH@@'

if (-not (Test-Path -LiteralPath $ChocoPath)) {
    Write-Output "ERROR: Chocolatey not found at $ChocoPath"
    exit 1
}

# Log folder
$LogFolder = '@@LOG_DIR@@'
if (-not (Test-Path -LiteralPath $LogFolder)) {
    New-Item -ItemType Directory -Path $LogFolder -Force | Out-Null
}

# Package ID to install
$PackageID = '@@ID@@'

try {
    & $ChocoPath install $PackageID -y --no-progress "--log-file=$LogFolder\\choco-install.log"

    if ($LASTEXITCODE -ne 0) {
        Write-Output "ERROR: Chocolatey installation failed with exit code $LASTEXITCODE"
        exit $LASTEXITCODE
    }
}
catch {
    Write-Output "ERROR: Exception caught - $_"
    exit 1
}

exit 0
"""

_TEMPLATES: dict[PackageSource, str] = {
    PackageSource.WINGET: _WINGET_TEMPLATE,
    PackageSource.CHOCOLATEY: _CHOCO_TEMPLATE,
}

_TOKEN = re.compile(r"@@[A-Z_]+@@")


def _ps_literal(value: str) -> str:
    """Body of a single-quoted PowerShell string (only ' needs doubling)."""
    return value.replace("'", "''")


def _comment_value(value: str) -> str:
    """Keep header values on their comment line."""
    return " ".join(value.splitlines())


def _support_path(source: PackageSource, paths: ScriptPaths) -> str:
    if source is PackageSource.WINGET:
        return paths.winget_install_script
    return paths.choco_exe


def synthesize(record: PackageRecord, paths: ScriptPaths | None = None) -> str:
    """Render the install script for one package.

    Args:
        record: The selected package.
        paths: Device-side locations; defaults to ``DEFAULT_PATHS``.

    Returns:
        The complete PowerShell script text.
    """
    paths = paths or DEFAULT_PATHS
    substitutions = {
        "@@NAME@@": _comment_value(record.name),
        "@@VERSION@@": _comment_value(record.version),
        "@@SUPPORT_PATH@@": _ps_literal(_support_path(record.source, paths)),
        "@@LOG_DIR@@": _ps_literal(paths.log_dir),
        "@@ID@@": _ps_literal(record.id),
    }

    # single pass, so substituted values are never re-scanned
    return _TOKEN.sub(lambda m: substitutions[m.group(0)], _TEMPLATES[record.source])


def script_filename(record: PackageRecord) -> str:
    """Suggested filename for a saved script."""
    return f"{record.id}_install.ps1"


def generate_install_script(
    record: PackageRecord,
    paths: ScriptPaths | None = None,
) -> GeneratedFile:
    """Generate the install script as a GeneratedFile.

    Args:
        record: The selected package.
        paths: Device-side locations.

    Returns:
        GeneratedFile with a suggested ``<id>_install.ps1`` filename.
    """
    return GeneratedFile(
        path=script_filename(record),
        content=synthesize(record, paths),
        overwrite=False,
        reason=f"Intune install script for {record.name} ({record.source.value})",
    )


# ── One-line commands for the Intune app definition ─────────────


def install_command(record: PackageRecord) -> str:
    if record.source is PackageSource.WINGET:
        return (
            f"winget install --id {record.id} "
            "--accept-package-agreements --accept-source-agreements"
        )
    return f"choco install {record.id} -y"


def uninstall_command(record: PackageRecord) -> str:
    if record.source is PackageSource.WINGET:
        return f"winget uninstall --id {record.id}"
    return f"choco uninstall {record.id} -y"


def supported_sources() -> list[str]:
    """Return source names with script templates available."""
    return sorted(s.value for s in _TEMPLATES)
