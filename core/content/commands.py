"""
Formatting commands applied to editor markup.

Commands mirror the editor toolbar (bold, italic, underline, font size and
family, alignment, lists, block format). There is no selection model: a
command applies to the whole document, and toggles (inline styles, lists)
switch off when the whole document already carries them.

Usage:
    markup = apply_command(markup, "bold")
    markup = apply_command(markup, "fontSize", "5")
"""

import re
from typing import Callable, List, Optional, Union

from .markup import Element, parse_fragment, serialize

Node = Union[Element, str]

INLINE_COMMANDS = {
    "bold": ("b", {"b", "strong"}),
    "italic": ("i", {"i", "em"}),
    "underline": ("u", {"u", "ins"}),
    "strikeThrough": ("s", {"s", "strike", "del"}),
}

FONT_COMMANDS = {
    "fontSize": "size",
    "fontName": "face",
    "foreColor": "color",
}

FONT_SIZES = ("1", "2", "3", "4", "5", "6", "7")

FONT_NAMES = ("Arial", "Verdana", "Times New Roman", "Courier New", "Georgia")

ALIGN_COMMANDS = {
    "justifyLeft": "left",
    "justifyCenter": "center",
    "justifyRight": "right",
    "justifyFull": "justify",
}

LIST_COMMANDS = {
    "insertOrderedList": "ol",
    "insertUnorderedList": "ul",
}

BLOCK_FORMATS = ("p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre")

FORMATTING_TAGS = {
    "b", "strong", "i", "em", "u", "ins", "s", "strike", "del",
    "font", "span", "sub", "sup", "small", "big", "mark",
}

_COLOR_RE = re.compile(r"^(#[0-9a-fA-F]{3}|#[0-9a-fA-F]{6}|[a-zA-Z]{3,20})$")

SUPPORTED_COMMANDS = tuple(
    list(INLINE_COMMANDS)
    + list(FONT_COMMANDS)
    + list(ALIGN_COMMANDS)
    + list(LIST_COMMANDS)
    + ["formatBlock", "removeFormat"]
)


class UnknownCommandError(ValueError):
    """Formatting command or value not supported"""
    pass


# ==================== Tree helpers ====================


def _has_content(nodes: List[Node]) -> bool:
    for node in nodes:
        if isinstance(node, str):
            if node.strip():
                return True
        elif node.tag == "img" or _has_content(node.children):
            return True
    return False


def _fully_wrapped(node: Element, tags: set, inside: bool = False) -> bool:
    """True when every non-blank text under node sits inside one of tags."""
    found_text = False
    for child in node.children:
        if isinstance(child, str):
            if child.strip():
                if not inside:
                    return False
                found_text = True
            continue
        child_inside = inside or child.tag in tags
        if not _fully_wrapped(child, tags, child_inside):
            return False
        if _has_content(child.children):
            found_text = True
    return found_text


def _unwrap(node: Element, predicate: Callable[[Element], bool]):
    """Replace every element matching predicate by its children."""
    result: List[Node] = []
    for child in node.children:
        if isinstance(child, Element):
            _unwrap(child, predicate)
            if predicate(child):
                result.extend(child.children)
                continue
        result.append(child)
    node.children = _merge_text(result)


def _merge_text(nodes: List[Node]) -> List[Node]:
    merged: List[Node] = []
    for node in nodes:
        if isinstance(node, str) and merged and isinstance(merged[-1], str):
            merged[-1] += node
        else:
            merged.append(node)
    return merged


def _wrap_inline_runs(node: Element, make_wrapper: Callable[[List[Node]], Element]):
    """Wrap each run of consecutive inline children (recursing into blocks)."""
    result: List[Node] = []
    run: List[Node] = []

    def flush():
        if run:
            if _has_content(run):
                result.append(make_wrapper(list(run)))
            else:
                result.extend(run)
            run.clear()

    for child in node.children:
        if isinstance(child, Element) and (child.is_block or child.tag in ("ul", "ol")):
            flush()
            _wrap_inline_runs(child, make_wrapper)
            result.append(child)
        else:
            run.append(child)
    flush()
    node.children = result


def _split_lines(nodes: List[Node]) -> List[List[Node]]:
    """Split an inline run at <br> elements."""
    lines: List[List[Node]] = [[]]
    for node in nodes:
        if isinstance(node, Element) and node.tag == "br":
            lines.append([])
        else:
            lines[-1].append(node)
    # A trailing <br> does not open a new line
    if len(lines) > 1 and not lines[-1]:
        lines.pop()
    return lines


def _blockify(root: Element) -> List[Element]:
    """
    Make every top-level child a block.

    Loose inline content is split at <br> into one <div> per line, the way
    a contentEditable surface does once a block command is applied.
    """
    blocks: List[Element] = []
    run: List[Node] = []

    def flush():
        if not run:
            return
        if any(isinstance(n, Element) or n.strip() for n in run):
            for line in _split_lines(run):
                if _has_content(line):
                    blocks.append(Element("div", {}, line))
                else:
                    blocks.append(Element("div", {}, [Element("br")]))
        run.clear()

    for child in root.children:
        if isinstance(child, Element) and child.is_block:
            flush()
            blocks.append(child)
        else:
            run.append(child)
    flush()
    root.children = list(blocks)
    return blocks


# ==================== Commands ====================


def _toggle_inline(root: Element, command: str):
    tag, equivalents = INLINE_COMMANDS[command]
    if _fully_wrapped(root, equivalents):
        _unwrap(root, lambda el: el.tag in equivalents)
    else:
        _wrap_inline_runs(root, lambda nodes: Element(tag, {}, nodes))


def _set_font(root: Element, command: str, value: Optional[str]):
    attr = FONT_COMMANDS[command]
    value = (value or "").strip()

    if command == "fontSize":
        if value not in FONT_SIZES:
            raise UnknownCommandError(f"Invalid font size: {value!r} (1-7)")
    elif command == "fontName":
        matches = [name for name in FONT_NAMES if name.lower() == value.lower()]
        if not matches:
            raise UnknownCommandError(
                f"Invalid font name: {value!r}. Available: {', '.join(FONT_NAMES)}"
            )
        value = matches[0]
    elif not _COLOR_RE.match(value):
        raise UnknownCommandError(f"Invalid color: {value!r}")

    # Drop the attribute from existing <font> elements, then unwrap empty ones
    for element in root.iter():
        if element.tag == "font":
            element.attrs.pop(attr, None)
    _unwrap(root, lambda el: el.tag == "font" and not el.attrs)

    _wrap_inline_runs(root, lambda nodes: Element("font", {attr: value}, nodes))


def _align(root: Element, command: str):
    alignment = ALIGN_COMMANDS[command]
    for block in _blockify(root):
        targets = [c for c in block.children if isinstance(c, Element) and c.tag == "li"] \
            if block.tag in ("ul", "ol") else [block]
        for target in targets:
            target.set_style("text-align", None if alignment == "left" else alignment)


def _toggle_list(root: Element, command: str):
    list_tag = LIST_COMMANDS[command]
    blocks = _blockify(root)

    if len(blocks) == 1 and blocks[0].tag == list_tag:
        # Already a list of this type: turn it off
        items = [c for c in blocks[0].children if isinstance(c, Element) and c.tag == "li"]
        root.children = [Element("div", dict(li.attrs), li.children) for li in items]
        return

    items: List[Element] = []
    for block in blocks:
        if block.tag in ("ul", "ol"):
            items.extend(c for c in block.children if isinstance(c, Element) and c.tag == "li")
        elif block.tag in ("p", "div"):
            items.append(Element("li", dict(block.attrs), block.children))
        else:
            items.append(Element("li", {}, [block]))
    root.children = [Element(list_tag, {}, items)]


def _format_block(root: Element, value: Optional[str]):
    tag = (value or "").strip().strip("<>").lower()
    if tag not in BLOCK_FORMATS:
        raise UnknownCommandError(
            f"Invalid block format: {value!r}. Available: {', '.join(BLOCK_FORMATS)}"
        )
    for block in _blockify(root):
        if block.tag in BLOCK_FORMATS:
            block.tag = tag


def _remove_format(root: Element):
    _unwrap(root, lambda el: el.tag in FORMATTING_TAGS)


def apply_command(markup: str, command: str, value: Optional[str] = None) -> str:
    """
    Apply a formatting command to markup.

    Args:
        markup: Current editor markup
        command: Toolbar command name (see SUPPORTED_COMMANDS)
        value: Command argument (font size, font name, color, block tag)

    Returns:
        New markup

    Raises:
        UnknownCommandError: If the command or its value is not supported
    """
    root = parse_fragment(markup)

    if command in INLINE_COMMANDS:
        _toggle_inline(root, command)
    elif command in FONT_COMMANDS:
        _set_font(root, command, value)
    elif command in ALIGN_COMMANDS:
        _align(root, command)
    elif command in LIST_COMMANDS:
        _toggle_list(root, command)
    elif command == "formatBlock":
        _format_block(root, value)
    elif command == "removeFormat":
        _remove_format(root)
    else:
        raise UnknownCommandError(
            f"Unknown command: {command}. Available: {', '.join(SUPPORTED_COMMANDS)}"
        )

    return serialize(root)
