"""
LibreOffice-backed format converter.

Turns a rendered ``.docx`` copy into a PDF by running LibreOffice headless in
a throwaway directory. The source document is only read, never modified.
Each conversion gets its own LibreOffice profile so parallel replays do not
fight over the default profile lock.
"""

from __future__ import annotations

import logging
from pathlib import Path
import subprocess
import tempfile

from formdoc.domain.errors import ConversionError
from formdoc.domain.models import DocumentHandle

logger = logging.getLogger("formdoc.soffice")


class SofficeFormatConverter:
    media_type = "application/pdf"

    def __init__(self, *, binary: str = "soffice", timeout_seconds: float = 120.0) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds

    def to_portable_artifact(self, handle: DocumentHandle) -> bytes:
        source = Path(handle)
        if not source.is_file():
            raise ConversionError(f"rendered document does not exist: {source}")

        with tempfile.TemporaryDirectory() as tmp:
            outdir = Path(tmp)
            command = [
                self.binary,
                f"-env:UserInstallation={(outdir / 'profile').as_uri()}",
                "--headless",
                "--norestore",
                "--convert-to",
                "pdf",
                "--outdir",
                str(outdir),
                str(source),
            ]
            try:
                process = subprocess.run(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=self.timeout_seconds,
                    check=False,
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                raise ConversionError(f"failed to invoke LibreOffice: {exc}") from exc

            if process.returncode != 0:
                stderr = process.stderr.decode("utf-8", errors="ignore")
                raise ConversionError(f"LibreOffice conversion failed ({process.returncode}): {stderr}")

            pdf_file = outdir / f"{source.stem}.pdf"
            if not pdf_file.exists():
                raise ConversionError("LibreOffice reported success, but no PDF output was produced")

            logger.info("document converted", extra={"stage": "rendered"})
            return pdf_file.read_bytes()
