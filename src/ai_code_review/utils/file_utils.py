"""
Source file helpers
"""

from pathlib import Path
from typing import Any, Dict, Union

from ai_code_review.exceptions import FileReadException

LANGUAGE_MAP: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".rb": "ruby",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".php": "php",
    ".swift": "swift",
    ".kt": "kotlin",
    ".rs": "rust",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".json": "json",
    ".md": "markdown",
    ".sh": "bash",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
    ".sql": "sql",
}


def read_file_content(file_path: Union[str, Path]) -> str:
    """Read a UTF-8 source file relative to the current directory"""
    path = Path(file_path).resolve()
    if not path.is_file():
        raise FileReadException(f"File not found: {file_path}", file_path=str(file_path))

    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadException(
            f"Error reading file {file_path}: {e}",
            file_path=str(file_path),
            original_error=e,
        )


def detect_language(file_path: Union[str, Path]) -> str:
    """Guess the language of a file from its extension"""
    return LANGUAGE_MAP.get(Path(file_path).suffix.lower(), "plaintext")


def get_file_info(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Basic metadata about a source file"""
    path = Path(file_path).resolve()
    try:
        stats = path.stat()
    except OSError as e:
        raise FileReadException(
            f"Error getting file info for {file_path}: {e}",
            file_path=str(file_path),
            original_error=e,
        )

    return {
        "path": str(file_path),
        "absolute_path": str(path),
        "size": stats.st_size,
        "last_modified": stats.st_mtime,
        "language": detect_language(file_path),
    }
