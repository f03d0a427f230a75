"""
Install receipt persistence — atomic read/write for InstallReceipt.

The receipt is JSON under the state dir. Writes are atomic (write to
temp file, then rename) so an interrupted install never leaves a
half-written receipt behind.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from pydantic import ValidationError

from provisioner.core.models.receipt import InstallReceipt

logger = logging.getLogger(__name__)


def load_receipt(path: Path) -> InstallReceipt | None:
    """Load the install receipt.

    Returns:
        InstallReceipt, or None if there is no usable receipt (missing
        or corrupt). Callers fall back to declared package names.
    """
    if not path.is_file():
        logger.info("No install receipt at %s", path)
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        receipt = InstallReceipt.model_validate(data)
        logger.debug("Loaded receipt from %s (version=%s)", path, receipt.version)
        return receipt
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Unusable install receipt %s: %s — ignoring", path, e)
        return None


def save_receipt(receipt: InstallReceipt, path: Path) -> None:
    """Save the install receipt (atomic write).

    Raises:
        OSError: If the state directory cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    data = receipt.model_dump(mode="json")
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".receipt_",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Receipt saved to %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

