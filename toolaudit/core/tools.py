"""
Tool catalogue and command-line classification

The catalogue order matters: classification takes the first tool with a
matching prefix, and dominant-tool ties go to the earlier tool.
"""
from typing import List, Optional, Set
from toolaudit.models import Language, LANGUAGES, ToolDefinition


TOOLS: List[ToolDefinition] = [
    ToolDefinition(name="CLion", prefixes=["/opt/clion", "/usr/bin/clion", "clion"],
                   languages=[Language.C]),
    ToolDefinition(name="Idea", prefixes=["/usr/lib/idea", "idea"],
                   languages=[Language.Java, Language.Kotlin]),
    ToolDefinition(name="Pycharm", prefixes=["/usr/lib/pycharm", "pycharm"],
                   languages=[Language.Python]),
    ToolDefinition(name="Eclipse",
                   prefixes=["/usr/lib/eclipse", "/usr/bin/java -Dosgi.requiredJavaVersion=1.8", "eclipse"],
                   languages=[Language.Java]),
    ToolDefinition(name="CodeBlocks", prefixes=["/usr/bin/codeblocks", "codeblocks"],
                   languages=[Language.C]),
    ToolDefinition(name="Geany", prefixes=["/usr/bin/geany", "geany"]),
    ToolDefinition(name="Emacs", prefixes=["/usr/bin/emacs", "emacs"]),
    ToolDefinition(name="GEdit", prefixes=["/usr/bin/gedit", "gedit"]),
    ToolDefinition(name="Vim", prefixes=["/usr/bin/vim", "vim", "gvim"]),
    ToolDefinition(name="Vi", prefixes=["/usr/bin/vi", "vi"]),
    ToolDefinition(name="VSCode", prefixes=["/usr/share/code", "/usr/bin/code", "vscode"],
                   languages=[Language.C, Language.Java, Language.Python]),
    ToolDefinition(name="Kate", prefixes=["/usr/bin/kate", "kate"]),
    ToolDefinition(name="Nano", prefixes=["nano"]),
]

# Matches nothing, always last
UNKNOWN = ToolDefinition(name="Unknown", prefixes=[], languages=[])

TOOLS_WITH_UNKNOWN: List[ToolDefinition] = TOOLS + [UNKNOWN]
TOOL_NAMES: List[str] = [tool.name for tool in TOOLS]

_BY_NAME = {tool.name: tool for tool in TOOLS_WITH_UNKNOWN}


def classify(command: str) -> ToolDefinition:
    """
    Classify a command line by prefix

    Args:
        command: Raw (or cleaned) command column of a process row

    Returns:
        First tool in catalogue order with a prefix the command starts with,
        or UNKNOWN
    """
    for tool in TOOLS:
        if any(command.startswith(prefix) for prefix in tool.prefixes):
            return tool
    return UNKNOWN


def get_tool(name: str) -> ToolDefinition:
    """Catalogue entry by name (KeyError for names not in the catalogue)"""
    return _BY_NAME[name]


def expected_languages(tool: ToolDefinition) -> Set[Language]:
    return set(tool.languages)


def parse_language(language_id: str) -> Optional[Language]:
    """
    Map a wire language id to a Language by prefix

    Example:
        >>> parse_language("cpp17")
        <Language.C: 'C'>
        >>> parse_language("rust") is None
        True
    """
    for language in LANGUAGES:
        if language_id.startswith(language.prefix):
            return language
    return None
