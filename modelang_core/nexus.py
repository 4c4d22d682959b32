"""NEXUS alignment reader behind the builtin ``nexus(file=..., id=...)`` call."""

import logging
import os
import re
import shlex
from typing import Dict, List, Optional, Tuple

from .exceptions import DataLoadError, InputError
from .objects import Alignment, Sequence

logger = logging.getLogger(__name__)

_COMMENT = re.compile(r"\[[^\]]*\]")
_BLOCK = re.compile(r"\bbegin\s+(\w+)\s*;(.*?)\bend(?:block)?\s*;", re.I | re.S)
_OPTION = re.compile(r"(\w+)\s*=\s*(\"[^\"]*\"|'[^']*'|[^\s;]+)")

DATA_TYPES = {
    "dna": "nucleotide",
    "rna": "nucleotide",
    "nucleotide": "nucleotide",
    "protein": "aminoacid",
    "standard": "standard",
    "binary": "binary",
}


class NexusFile:
    """Parsed DATA or CHARACTERS block of a NEXUS file."""

    def __init__(self):
        self.ntax: Optional[int] = None
        self.nchar: Optional[int] = None
        self.data_type = "nucleotide"
        self.missing = "?"
        self.gap = "-"
        self.sequences: Dict[str, str] = {}

    @classmethod
    def parse(cls, text: str) -> "NexusFile":
        if not text.lstrip().upper().startswith("#NEXUS"):
            raise DataLoadError("Not a NEXUS file: missing #NEXUS header")
        text = _COMMENT.sub("", text)
        for name, body in _BLOCK.findall(text):
            if name.lower() in ("data", "characters"):
                nexus = cls()
                nexus._read_block(body)
                return nexus
        raise DataLoadError("NEXUS file has no DATA or CHARACTERS block")

    def _read_block(self, body: str) -> None:
        for command in body.split(";"):
            keyword, rest = _split(command)
            match keyword.lower():
                case "dimensions":
                    options = _options(rest)
                    self.ntax = _int_option(options, "ntax")
                    self.nchar = _int_option(options, "nchar")
                case "format":
                    options = _options(rest)
                    datatype = options.get("datatype", "dna").lower()
                    self.data_type = DATA_TYPES.get(datatype, datatype)
                    self.missing = options.get("missing", self.missing)
                    self.gap = options.get("gap", self.gap)
                case "matrix":
                    self._read_matrix(rest)
        self._check()

    def _read_matrix(self, text: str) -> None:
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                tokens = shlex.split(line)
            except ValueError as e:
                raise DataLoadError(f"Malformed matrix row '{line}': {e}") from e
            taxon, chunk = tokens[0], "".join(tokens[1:])
            # interleaved matrices repeat the taxon on later rows
            self.sequences[taxon] = self.sequences.get(taxon, "") + chunk

    def _check(self) -> None:
        if not self.sequences:
            raise DataLoadError("NEXUS matrix is empty")
        if self.ntax is not None and self.ntax != len(self.sequences):
            raise DataLoadError(
                f"NEXUS declares {self.ntax} taxa but the matrix has {len(self.sequences)}"
            )
        if self.nchar is not None:
            for taxon, seq in self.sequences.items():
                if len(seq) != self.nchar:
                    raise DataLoadError(
                        f"Sequence '{taxon}' has {len(seq)} sites, expected {self.nchar}"
                    )


def _split(command: str) -> Tuple[str, str]:
    command = command.strip()
    match = re.match(r"(\w+)", command)
    if match is None:
        return "", ""
    return match.group(1), command[match.end():]


def _options(text: str) -> Dict[str, str]:
    return {k.lower(): v.strip("\"'") for k, v in _OPTION.findall(text)}


def _int_option(options: Dict[str, str], key: str) -> Optional[int]:
    if key not in options:
        return None
    try:
        return int(options[key])
    except ValueError:
        raise DataLoadError(f"Invalid {key.upper()} value '{options[key]}'") from None


class NexusLoader:
    """Loads alignments relative to ``base_path`` and caches them per file and id."""

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = base_path or os.getcwd()
        self._alignments: Dict[Tuple[str, str], Alignment] = {}

    def resolve_path(self, file_path: str) -> str:
        return os.path.abspath(os.path.join(self.base_path, file_path))

    def load(self, file_path: str, alignment_id: str = "alignment") -> Alignment:
        abs_path = self.resolve_path(file_path)
        key = (abs_path, alignment_id)
        if key in self._alignments:
            return self._alignments[key]
        try:
            with open(abs_path, "r", encoding="utf-8") as f:
                nexus = NexusFile.parse(f.read())
        except OSError as e:
            raise DataLoadError(f"Cannot read NEXUS file {abs_path}: {e}") from e
        alignment = self.build_alignment(nexus, alignment_id)
        self._alignments[key] = alignment
        logger.info(
            "Loaded alignment '%s' from %s: %d taxa, %d sites",
            alignment_id,
            abs_path,
            alignment.get_taxon_count(),
            alignment.get_site_count(),
        )
        return alignment

    def build_alignment(self, nexus: NexusFile, alignment_id: str) -> Alignment:
        sequences: List[Sequence] = [
            Sequence(taxon=taxon, value=value) for taxon, value in nexus.sequences.items()
        ]
        try:
            return Alignment(alignment_id, sequence=sequences, dataType=nexus.data_type)
        except InputError as e:
            raise DataLoadError(str(e)) from e

    def clear(self) -> None:
        self._alignments.clear()
