"""
Load batch files of expressions and variable bindings.

A batch file holds one entry per line:

    # comment
    x = 2
    (2 + x) * 4
    x = 5
    x / 2

A ``NAME = VALUE`` line binds a variable for every expression below it,
until the name is bound again. Any other non-blank line is an expression.
Batch text may come from a ``.txt`` file or from the first ``.txt`` member
of a ``.zip``, ``.tar.xz`` or ``.7z`` archive.
"""
from pathlib import Path
import tarfile
import tempfile
from typing import Callable, Dict, List, Optional
import zipfile

import py7zr
from pydantic import ValidationError

from expression_calculator.common.models import EvaluationRequest


COMMENT_PREFIX = "#"
BINDING_SEPARATOR = "="


def _first_txt(names: List[str], archive_path: Path) -> str:
    for name in names:
        if name.endswith(".txt"):
            return name
    raise ValueError(f"Archive has no .txt member: {archive_path}")


def _zip_text(archive_path: Path) -> str:
    with zipfile.ZipFile(archive_path) as zf:
        return zf.read(_first_txt(zf.namelist(), archive_path)).decode("utf-8")


def _tar_xz_text(archive_path: Path) -> str:
    with tarfile.open(archive_path, "r:xz") as tf:
        files = [m.name for m in tf.getmembers() if m.isfile()]
        member = tf.extractfile(_first_txt(files, archive_path))
        return member.read().decode("utf-8")


def _7z_text(archive_path: Path) -> str:
    # py7zr only extracts to disk
    with tempfile.TemporaryDirectory() as tmpdir, py7zr.SevenZipFile(archive_path, mode="r") as archive:
        name = _first_txt(archive.getnames(), archive_path)
        archive.extract(path=tmpdir, targets=[name])
        return (Path(tmpdir) / name).read_text(encoding="utf-8")


# Archive readers keyed by the full suffix chain of the file name
ARCHIVE_READERS: Dict[str, Callable[[Path], str]] = {
    ".zip": _zip_text,
    ".tar.xz": _tar_xz_text,
    ".7z": _7z_text,
}


def read_batch_text(input_path: Path) -> str:
    """
    Return the batch text of a ``.txt`` file or of a supported archive.

    :param Path input_path: Path to the file

    :return: Batch text
    :rtype: str
    :raises ValueError: If the format is unsupported or an archive has no .txt member
    """
    suffix = "".join(input_path.suffixes[-2:]) if input_path.name.endswith(".tar.xz") else input_path.suffix
    if suffix == ".txt":
        return input_path.read_text(encoding="utf-8")
    if suffix not in ARCHIVE_READERS:
        raise ValueError(f"Unsupported batch file format: {suffix or input_path.name}")
    return ARCHIVE_READERS[suffix](input_path)


def _parse_binding(line: str, line_number: int) -> tuple:
    name, _, raw_value = line.partition(BINDING_SEPARATOR)
    name = name.strip()
    if not name.isalpha():
        raise ValueError(f"Line {line_number}: invalid variable name {name!r}")
    try:
        return name, float(raw_value)
    except ValueError:
        raise ValueError(f"Line {line_number}: invalid value for {name!r}: {raw_value.strip()!r}") from None


def parse_batch(text: str, variables: Optional[Dict[str, float]] = None) -> List[EvaluationRequest]:
    """
    Turn batch text into evaluation requests.

    Each request carries a snapshot of the bindings in effect on its line,
    starting from ``variables``.

    :param str text: Batch text
    :param dict variables: Bindings in effect before the first line

    :return: One request per expression line, in file order
    :rtype: List[EvaluationRequest]
    :raises ValueError: If a binding line is malformed
    """
    bindings: Dict[str, float] = dict(variables or {})
    requests: List[EvaluationRequest] = []

    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        if BINDING_SEPARATOR in line:
            name, value = _parse_binding(line, line_number)
            bindings[name] = value
            continue
        try:
            requests.append(EvaluationRequest(expression=line, variables=dict(bindings)))
        except ValidationError as exc:
            raise ValueError(f"Line {line_number}: {exc}") from exc

    return requests


def load_requests(input_path: Path, variables: Optional[Dict[str, float]] = None) -> List[EvaluationRequest]:
    """
    Read a batch file and return its evaluation requests.

    :param Path input_path: ``.txt`` file or archive
    :param dict variables: Bindings given outside the file, overridden by the file's own

    :return: Evaluation requests
    :rtype: List[EvaluationRequest]
    """
    return parse_batch(read_batch_text(input_path), variables)
