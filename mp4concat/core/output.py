"""Output descriptor: explicit file, or a directory that receives a derived name"""
from pathlib import Path
from typing import Optional, Sequence, Union

from ..utils.file_utils import ensure_directory, is_directory_target
from .exceptions import OutputPathError
from .naming import NameMode, derive_concat_filename


def resolve_output_path(
    output: Union[str, Path],
    sources: Optional[Sequence[Path]] = None,
    name_mode: Union[str, NameMode] = NameMode.FULL,
    extension: str = ".mp4",
) -> Path:
    """
    Turn the user-supplied output into the final output file path.

    An existing directory (or a path ending in a separator) gets a filename
    derived from sources; anything else is taken as the output file itself.
    The containing directory is created if missing.

    Raises:
        OutputPathError: If the directory cannot be created, sources are
            needed but missing, or the path would overwrite a source file
    """
    directory_target = is_directory_target(output)
    output = Path(output).expanduser().resolve()

    try:
        if directory_target:
            if not sources:
                raise OutputPathError(str(output), "a filename cannot be derived without sources")
            ensure_directory(output)
            output = output / derive_concat_filename(sources, name_mode, extension)
        else:
            ensure_directory(output.parent)
    except (FileExistsError, NotADirectoryError) as e:
        raise OutputPathError(str(output), f"parent is not a directory ({e})")
    except PermissionError as e:
        raise OutputPathError(str(output), f"permission denied ({e})")

    if sources and output in {Path(s).resolve() for s in sources}:
        raise OutputPathError(str(output), "would overwrite one of the source files")

    return output
