"""Self-extracting POSIX ``sh`` installer around a built artifact.

The artifact is base64-encoded between two literal sentinel lines,
:data:`PAYLOAD_BEGIN` and :data:`PAYLOAD_END`.  The installer extracts
the lines between them with ``sed``, decodes them with ``base64`` (or
``openssl`` as a fallback) into ``$INSTALL_DIR/$CLI_NAME``, marks the
result executable and runs its ``--version`` to verify the install.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

from schemacli.exceptions import SchemaError
from schemacli.version import __version__

PAYLOAD_BEGIN: str = "__PAYLOAD_BEGIN__"
PAYLOAD_END: str = "__PAYLOAD_END__"

DEFAULT_INSTALL_DIR: str = "${HOME}/.local/bin"

_TEMPLATE = r"""#!/usr/bin/env sh
#
# Installer for @CLI_NAME@, generated by schemacli @SCHEMACLI_VERSION@.
#
# Usage:
#   sh @CLI_NAME@-install.sh
#
# Environment variables:
#   INSTALL_DIR  - Installation directory (default: ~/.local/bin)
#   CLI_NAME     - Name for the installed binary (default: @CLI_NAME@)
#

set -e

CLI_NAME="${CLI_NAME:-@CLI_NAME@}"
DEFAULT_INSTALL_DIR="@DEFAULT_INSTALL_DIR@"

info() {
    printf '\033[0;34m[INFO]\033[0m %s\n' "$1"
}

success() {
    printf '\033[0;32m[OK]\033[0m %s\n' "$1"
}

error() {
    printf '\033[0;31m[ERROR]\033[0m %s\n' "$1" >&2
}

warn() {
    printf '\033[0;33m[WARN]\033[0m %s\n' "$1"
}

has_cmd() {
    command -v "$1" >/dev/null 2>&1
}

# decode_base64 <encoded-file>
decode_base64() {
    if has_cmd base64; then
        base64 -d < "$1" 2>/dev/null || base64 -D < "$1"
    elif has_cmd openssl; then
        openssl base64 -d -in "$1"
    else
        error "No base64 decoder found (need base64 or openssl)"
        exit 1
    fi
}

main() {
    info "Installing ${CLI_NAME}..."

    INSTALL_DIR="${INSTALL_DIR:-${DEFAULT_INSTALL_DIR}}"
    TARGET="${INSTALL_DIR}/${CLI_NAME}"

    if [ ! -d "${INSTALL_DIR}" ]; then
        info "Creating directory: ${INSTALL_DIR}"
        mkdir -p "${INSTALL_DIR}"
    fi

    info "Extracting ${CLI_NAME} to ${TARGET}..."
    ENCODED="${TARGET}.b64.$$"
    sed -n '/^__PAYLOAD_BEGIN__$/,/^__PAYLOAD_END__$/p' "$0" \
        | sed '1d;$d' > "${ENCODED}"
    if ! decode_base64 "${ENCODED}" > "${TARGET}"; then
        rm -f "${ENCODED}"
        error "Could not decode the embedded ${CLI_NAME} payload"
        exit 1
    fi
    rm -f "${ENCODED}"

    chmod +x "${TARGET}"
    success "Installed ${CLI_NAME} to ${TARGET}"

    case ":${PATH}:" in
        *":${INSTALL_DIR}:"*)
            success "${CLI_NAME} is ready to use!"
            ;;
        *)
            warn "${INSTALL_DIR} is not in your PATH"
            echo ""
            echo "Add the following to your shell profile (~/.bashrc, ~/.zshrc, etc.):"
            echo ""
            echo "    export PATH=\"\${PATH}:${INSTALL_DIR}\""
            echo ""
            ;;
    esac

    echo ""
    info "Verifying installation..."
    "${TARGET}" --version || true

    echo ""
    success "Installation complete!"
    echo ""
    echo "Enable shell completions by adding to your shell profile:"
    echo ""
    echo "    eval \"\$(${CLI_NAME} completion)\"          # bash"
    echo "    eval \"\$(${CLI_NAME} completion -s zsh)\"   # zsh"
    echo ""
}

main "$@"
exit 0

"""


def render_installer(payload: bytes, *, name: str) -> str:
    """Return installer source embedding *payload* for a CLI called *name*."""
    header = (
        _TEMPLATE.replace("@CLI_NAME@", name)
        .replace("@SCHEMACLI_VERSION@", __version__)
        .replace("@DEFAULT_INSTALL_DIR@", DEFAULT_INSTALL_DIR)
    )
    encoded = base64.encodebytes(payload).decode("ascii")
    return f"{header}{PAYLOAD_BEGIN}\n{encoded}{PAYLOAD_END}\n"


def extract_payload(installer_text: str) -> bytes:
    """Decode the payload embedded in *installer_text*.

    Raises
    ------
    SchemaError
        If the sentinel lines are missing or the payload is not base64.
    """
    lines = installer_text.splitlines()
    try:
        start = lines.index(PAYLOAD_BEGIN)
        end = lines.index(PAYLOAD_END, start + 1)
    except ValueError:
        raise SchemaError("Installer has no embedded payload") from None
    try:
        return base64.b64decode("".join(lines[start + 1:end]), validate=True)
    except binascii.Error as exc:
        raise SchemaError(f"Installer payload is not valid base64: {exc}") from exc


def write_installer(artifact: Path, target: Path, *, name: str) -> Path:
    """Write an executable installer for *artifact* to *target*."""
    target.write_text(render_installer(artifact.read_bytes(), name=name), encoding="utf-8")
    target.chmod(0o755)
    return target
