# Candidate selection, naming and the concat pipeline
from .candidates import CandidateSet, SortOrder, get_candidates
from .exceptions import Mp4ConcatError
from .naming import NameMode, common_filename_prefix, derive_concat_filename
from .pipeline import ConcatResult, Mp4Concat, verify_output

__all__ = [
    "CandidateSet",
    "ConcatResult",
    "Mp4Concat",
    "Mp4ConcatError",
    "NameMode",
    "SortOrder",
    "common_filename_prefix",
    "derive_concat_filename",
    "get_candidates",
    "verify_output",
]
