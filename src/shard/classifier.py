"""Content classification for captured text.

Decides whether a string is a color, source code or plain text. Classification
is a total function: anything that is not confidently a color or code is text.
"""

import json
import re

from shard.color import parse
from shard.errors import ParseError
from shard.models import CodeContent, ColorContent, SnippetContent, TextContent

MIN_CODE_LINES = 2
CODE_SCORE_THRESHOLD = 8
MIN_LANGUAGE_SCORE = 2
SPECIAL_CHARS = set("{}[]();:=<>+-*/&|!@#$%^")
SPECIAL_CHAR_RATIO = 0.05
INDENT_BONUS = 4
SPECIAL_CHAR_BONUS = 2

# Weighted indicators that a piece of text is source code.
CODE_INDICATORS: list[tuple[re.Pattern, int]] = [
    (re.compile(r"\w\([^()\n]*\)"), 2),
    (re.compile(r";\s*$", re.MULTILINE), 4),
    (re.compile(r":\s*$", re.MULTILINE), 2),
    (re.compile(r"\b(fn|func|function|def)\s+\w+\s*[(<]"), 5),
    (re.compile(r"\b(class|struct|enum|impl|trait|interface)\s+\w+\b[\w<>, ]*\s*[:{(]"), 5),
    (re.compile(r"^[ \t]*(if|elif|else|for|while|switch|match|case)\b.*[{:]\s*$", re.MULTILINE), 3),
    (re.compile(r"\b(return|break|continue|yield)\b"), 2),
    (re.compile(r"^[ \t]*(import|from\s+\S+\s+import|use|require|#include)\b", re.MULTILINE), 4),
    (re.compile(r"\b(const|let|var|mut)\s+\w+\s*[=:]"), 3),
    (re.compile(r"\b(pub|private|public|protected|static)\s+\w+"), 2),
    (re.compile(r"=>|->"), 3),
    (re.compile(r"::"), 3),
    (re.compile(r"==|!=|<=|>=|&&|\|\|"), 2),
    (re.compile(r"(^|\s)//\s", re.MULTILINE), 3),
    (re.compile(r"^#!", re.MULTILINE), 4),
    (re.compile(r"^[ \t]*(SELECT|INSERT\s+INTO|UPDATE|DELETE\s+FROM|CREATE\s+TABLE|ALTER\s+TABLE)\b", re.MULTILINE), 4),
    (re.compile(r"\$\{?\w+\}?"), 2),
    (re.compile(r"\|\s*\w+"), 2),
]

# Opening and closing delimiters that must both appear, in that order.
PAIRED_DELIMITERS: list[tuple[str, str, int]] = [
    ("{", "}", 5),
    ("[", "]", 2),
    ("/*", "*/", 3),
]

OPEN_TAG_REGEX = re.compile(r"<(\w+)\b[^<>]*>")
CLOSE_TAG_REGEX = re.compile(r"</(\w+)>")
MATCHED_TAG_WEIGHT = 6

SUPPORTED_LANGUAGES = ("rust", "python", "javascript", "typescript", "json", "html", "css", "sql", "shell", "go")

_JAVASCRIPT_PATTERNS: list[tuple[re.Pattern, int]] = [
    (re.compile(r"\bfunction\s*\w*\s*\("), 2),
    (re.compile(r"\b(const|let|var)\s+\w+\s*="), 2),
    (re.compile(r"=>"), 2),
    (re.compile(r"\bconsole\.\w+\("), 2),
    (re.compile(r"\brequire\("), 2),
    (re.compile(r"^[ \t]*import\s+.+\s+from\s+['\"]", re.MULTILINE), 3),
    (re.compile(r"^[ \t]*export\s+", re.MULTILINE), 2),
    (re.compile(r"===|!=="), 2),
    (re.compile(r"\b(document|window)\.\w+"), 1),
]

# Scored per language; a language's score is the sum of weights of the patterns it matches.
LANGUAGE_PATTERNS: dict[str, list[tuple[re.Pattern, int]]] = {
    "rust": [
        (re.compile(r"^[ \t]*(pub\s+)?fn\s+\w+", re.MULTILINE), 3),
        (re.compile(r"\b\w+!\("), 2),
        (re.compile(r"\blet\s+mut\b"), 3),
        (re.compile(r"^[ \t]*(impl|trait|mod)\s+\w+", re.MULTILINE), 3),
        (re.compile(r"^[ \t]*(pub\s+)?(struct|enum)\s+\w+", re.MULTILINE), 2),
        (re.compile(r"^[ \t]*use\s+\w+(::\w+)*", re.MULTILINE), 3),
        (re.compile(r"#\[\w+"), 3),
        (re.compile(r"&(mut\s+)?(self|str|\[)"), 2),
        (re.compile(r"->\s*[\w<(&]"), 1),
        (re.compile(r"::"), 1),
    ],
    "python": [
        (re.compile(r"^[ \t]*def\s+\w+\s*\(", re.MULTILINE), 3),
        (re.compile(r"^[ \t]*class\s+\w+\s*[(:]", re.MULTILINE), 3),
        (re.compile(r"^[ \t]*import\s+[\w.]+(\s+as\s+\w+)?\s*$", re.MULTILINE), 2),
        (re.compile(r"^[ \t]*from\s+[\w.]+\s+import\s+", re.MULTILINE), 3),
        (re.compile(r"\bif\s+__name__\s*=="), 3),
        (re.compile(r"^[ \t]*(elif|except|finally|with)\b.*:\s*$", re.MULTILINE), 2),
        (re.compile(r"^[ \t]*(if|for|while|else|try)\b.*:\s*$", re.MULTILINE), 1),
        (re.compile(r"\bself\.\w+"), 1),
        (re.compile(r"\bprint\("), 1),
        (re.compile(r"\b(None|True|False)\b"), 1),
        (re.compile(r"^[ \t]*@\w+", re.MULTILINE), 1),
    ],
    "javascript": _JAVASCRIPT_PATTERNS,
    "typescript": _JAVASCRIPT_PATTERNS + [
        (re.compile(r":\s*(string|number|boolean|any|void|never|unknown)\b"), 3),
        (re.compile(r"^[ \t]*(export\s+)?interface\s+\w+", re.MULTILINE), 3),
        (re.compile(r"^[ \t]*(export\s+)?type\s+\w+\s*=", re.MULTILINE), 3),
        (re.compile(r"\bas\s+(string|number|const|any)\b"), 2),
        (re.compile(r"\b(public|private|readonly)\s+\w+\s*[:(]"), 1),
    ],
    "html": [
        (re.compile(r"<!DOCTYPE\s+html", re.IGNORECASE), 4),
        (re.compile(
            r"<(html|head|body|div|span|p|a|ul|ol|li|table|tr|td|script|style|section|header|footer|nav|form|input|button|img)\b[^<>]*>",
            re.IGNORECASE,
        ), 3),
        (re.compile(r"</\w+>"), 2),
        (re.compile(r"\b(class|id|href|src)=\""), 1),
    ],
    "css": [
        (re.compile(
            r"^[ \t]*([.#][\w-]+|[a-z]+[.#:][\w-]+|html|body|div|span|p|a|h[1-6]|ul|li|button|input|\*)[^{};()\n]*\{",
            re.MULTILINE,
        ), 3),
        (re.compile(r"^[ \t]*[a-z-]+\s*:\s*[^;{}\n]+;\s*$", re.MULTILINE), 3),
        (re.compile(r"@(media|import|keyframes|font-face|supports)\b"), 3),
        (re.compile(r"\b\d+(px|em|rem|vh|vw)\b"), 1),
        (re.compile(r"!important\b"), 2),
    ],
    "sql": [
        (re.compile(
            r"^[ \t]*(SELECT|INSERT\s+INTO|UPDATE|DELETE\s+FROM|CREATE\s+(TABLE|INDEX|VIEW)|ALTER\s+TABLE|DROP\s+TABLE|WITH)\b",
            re.MULTILINE | re.IGNORECASE,
        ), 3),
        (re.compile(r"\bFROM\s+\w+(?![\w.]*\s+import)", re.IGNORECASE), 2),
        (re.compile(r"\bWHERE\s+\w+\s*(=|<|>|LIKE|IN|IS)", re.IGNORECASE), 2),
        (re.compile(r"\bJOIN\s+\w+(\s+\w+)?\s+ON\b", re.IGNORECASE), 2),
        (re.compile(r"\b(GROUP|ORDER)\s+BY\b", re.IGNORECASE), 2),
        (re.compile(r"\bVALUES\s*\(", re.IGNORECASE), 2),
    ],
    "shell": [
        (re.compile(r"^#!\s*/(usr/)?bin/(env\s+)?(ba|z)?sh", re.MULTILINE), 5),
        (re.compile(r"^[ \t]*\$\s+\w+", re.MULTILINE), 2),
        (re.compile(
            r"^[ \t]*(echo|cd|ls|mkdir|rm|cp|mv|grep|sed|awk|cat|chmod|sudo|apt(-get)?|brew|curl|wget|git|npm|pip|export)\s",
            re.MULTILINE,
        ), 2),
        (re.compile(r"\$\{?\w+\}?"), 1),
        (re.compile(r"\|\s*(grep|awk|sed|sort|uniq|head|tail|wc|xargs|tee)\b"), 2),
        (re.compile(r"^[ \t]*(fi|done|esac)\s*$", re.MULTILINE), 2),
        (re.compile(r"\bthen\s*$", re.MULTILINE), 1),
    ],
    "go": [
        (re.compile(r"^[ \t]*package\s+\w+\s*$", re.MULTILINE), 3),
        (re.compile(r"^[ \t]*func\s+(\(\w+\s+\*?\w+\)\s*)?\w+\s*\(", re.MULTILINE), 3),
        (re.compile(r":="), 2),
        (re.compile(r"^[ \t]*import\s+[(\"]", re.MULTILINE), 2),
        (re.compile(r"^[ \t]*type\s+\w+\s+(struct|interface)\b", re.MULTILINE), 3),
        (re.compile(r"\bfmt\.\w+\("), 2),
        (re.compile(r"\b(defer|chan)\s+\w+"), 1),
    ],
}

JSON_SCORE = 10

LANGUAGE_EXTENSIONS = {
    "rust": "rs",
    "python": "py",
    "javascript": "js",
    "typescript": "ts",
    "json": "json",
    "html": "html",
    "css": "css",
    "sql": "sql",
    "shell": "sh",
    "bash": "sh",
    "sh": "sh",
    "go": "go",
    "c": "c",
    "cpp": "cpp",
    "c++": "cpp",
    "java": "java",
    "ruby": "rb",
    "php": "php",
    "swift": "swift",
    "kotlin": "kt",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "markdown": "md",
    "xml": "xml",
}


def classify(text: str) -> SnippetContent:
    """Classify captured text as a color, code or plain text.

    Args:
        text: Arbitrary text, e.g. clipboard contents.

    Returns:
        ColorContent when the whole trimmed text is one color, CodeContent when
        the text looks like source code, TextContent otherwise.
    """
    trimmed = text.strip()
    try:
        return ColorContent(parse(trimmed))
    except ParseError:
        pass

    if looks_like_code(trimmed):
        return CodeContent(text=text, language=detect_language(trimmed))
    return TextContent(text=text)


def looks_like_code(text: str) -> bool:
    trimmed = text.strip()
    lines = [line for line in trimmed.splitlines() if line.strip()]
    if len(lines) < MIN_CODE_LINES:
        return False
    return code_score(trimmed) >= CODE_SCORE_THRESHOLD


def code_score(text: str) -> int:
    score = sum(weight for pattern, weight in CODE_INDICATORS if pattern.search(text))
    score += sum(weight for opening, closing, weight in PAIRED_DELIMITERS if _has_pair(text, opening, closing))
    if has_matched_tag(text):
        score += MATCHED_TAG_WEIGHT

    lines = [line for line in text.splitlines() if line.strip()]
    indented = sum(1 for line in lines if line.startswith(("  ", "\t")))
    if lines and indented > len(lines) / 3:
        score += INDENT_BONUS

    special = sum(1 for char in text if char in SPECIAL_CHARS)
    if text and special / len(text) > SPECIAL_CHAR_RATIO:
        score += SPECIAL_CHAR_BONUS
    return score


def language_scores(text: str) -> dict[str, int]:
    scores = {}
    for language in SUPPORTED_LANGUAGES:
        if language == "json":
            scores[language] = _json_score(text)
            continue
        patterns = LANGUAGE_PATTERNS[language]
        scores[language] = sum(weight for pattern, weight in patterns if pattern.search(text))
    return scores


def detect_language(text: str) -> str | None:
    """Guess the language of a code snippet.

    Returns the highest-scoring supported language, or None when no language
    reaches MIN_LANGUAGE_SCORE. Ties go to the language listed first in
    SUPPORTED_LANGUAGES.
    """
    scores = language_scores(text)
    best = max(SUPPORTED_LANGUAGES, key=lambda language: scores[language])
    if scores[best] < MIN_LANGUAGE_SCORE:
        return None
    return best


def language_to_extension(language: str | None) -> str:
    if not language:
        return "txt"
    return LANGUAGE_EXTENSIONS.get(language.lower(), "txt")


def has_matched_tag(text: str) -> bool:
    """True when some opening tag is followed later by a closing tag of the same name."""
    last_close: dict[str, int] = {}
    for match in CLOSE_TAG_REGEX.finditer(text):
        last_close[match.group(1)] = match.start()
    return any(last_close.get(match.group(1), -1) >= match.end() for match in OPEN_TAG_REGEX.finditer(text))


def _has_pair(text: str, opening: str, closing: str) -> bool:
    start = text.find(opening)
    return start != -1 and text.find(closing, start + len(opening)) != -1


def _json_score(text: str) -> int:
    stripped = text.strip()
    if not stripped or stripped[0] not in "{[":
        return 0
    try:
        value = json.loads(stripped)
    except ValueError:
        return 0
    return JSON_SCORE if isinstance(value, (dict, list)) else 0
