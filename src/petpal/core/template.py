"""Prompt templates for flows.

A PromptTemplate is written in a small subset of jinja2 syntax:

- ``{{ field }}`` / ``{{ nested.field }}`` interpolates a field of the input model
- ``{% if field %}...{% endif %}`` renders its body only when the field is present and non-empty
- ``{{ media(field) }}`` attaches a base64 image data uri as a separate multimodal part

The source is parsed once, with jinja2's parser, into an ordered tuple of nodes
(Text | FieldRef | IfPresent | MediaRef). Rendering interprets those nodes against a validated
input value; nothing is evaluated as code, and the same input always renders the same prompt.
Constructs outside the subset (filters, loops, else-branches, literals) are rejected when the
template is built, as are references to fields the input model does not declare.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any, Type, Union, get_args, get_origin

from jinja2 import Environment, nodes as jinja_nodes
from jinja2.exceptions import TemplateSyntaxError as JinjaTemplateSyntaxError
from pydantic import BaseModel

from .exceptions import InvalidMediaFormat, TemplateSyntaxError
from .schema import validate
from ..types_.core import ContentPart, ImageContentPart, ImageURL, TextContentPart
from ..utilities import format_number

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime_type>[\w.+-]+/[\w.+-]+)(?:;[\w.+-]+=[\w.+-]+)*;base64,(?P<data>\S+)$")
MEDIA_FUNCTION = "media"

# block tags on their own line leave no blank lines behind
_environment = Environment(trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=False, autoescape=False)


# --- Nodes ---
@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class FieldRef:
    path: tuple[str, ...]


@dataclass(frozen=True)
class IfPresent:
    path: tuple[str, ...]
    body: tuple[Node, ...]


@dataclass(frozen=True)
class MediaRef:
    path: tuple[str, ...]


Node = Union[Text, FieldRef, IfPresent, MediaRef]


# --- Rendered output ---
@dataclass(frozen=True)
class MediaAttachment:
    """An inline binary payload passed to the model next to the prompt text."""

    field: str
    mime_type: str
    data_uri: str

    def to_content_part(self) -> ImageContentPart:
        return ImageContentPart(image_url=ImageURL(url=self.data_uri))


@dataclass(frozen=True)
class RenderedPrompt:
    """Ordered text segments and media attachments."""

    parts: tuple[str | MediaAttachment, ...]

    @classmethod
    def from_parts(cls, parts: list[str | MediaAttachment]) -> RenderedPrompt:
        merged: list[str | MediaAttachment] = []
        for part in parts:
            if isinstance(part, str) and merged and isinstance(merged[-1], str):
                merged[-1] += part
            elif part != "":
                merged.append(part)

        if merged and isinstance(merged[0], str):
            merged[0] = merged[0].lstrip()
        if merged and isinstance(merged[-1], str):
            merged[-1] = merged[-1].rstrip()
        return cls(parts=tuple(p for p in merged if p != ""))

    @property
    def text(self) -> str:
        return "".join(p for p in self.parts if isinstance(p, str))

    @property
    def attachments(self) -> list[MediaAttachment]:
        return [p for p in self.parts if isinstance(p, MediaAttachment)]

    def to_content(self) -> str | list[ContentPart]:
        """Return plain text, or ordered content parts when there are attachments."""
        if not self.attachments:
            return self.text
        return [
            TextContentPart(text=p) if isinstance(p, str) else p.to_content_part()
            for p in self.parts
            if not (isinstance(p, str) and not p.strip())
        ]


def parse_data_uri(value: Any, field: str) -> MediaAttachment:
    """Parse a base64 image data uri.

    Raises
    ------
    InvalidMediaFormat
        If the value is not a string starting with 'data:image' in 'data:<mime>;base64,<data>' form.
    """
    if not isinstance(value, str) or not value.startswith("data:image"):
        raise InvalidMediaFormat(field)
    match = DATA_URI_PATTERN.match(value)
    if not match:
        raise InvalidMediaFormat(field, f"Field '{field}' is not a valid base64 data uri")
    return MediaAttachment(field=field, mime_type=match.group("mime_type"), data_uri=value)


class PromptTemplate:
    """Parse-once, render-many prompt template bound to an input model.

    Parameters
    ----------
    source : str
        Template text (see module docstring for the supported syntax).
    input_model : Type[BaseModel]
        Declares every field the template may reference. Field names may be given as
        python attribute names or as their aliases.

    Examples
    --------
    >>> class NameInput(BaseModel):
    ...     pet_type: str
    ...     style: str | None = None
    >>> template = PromptTemplate("Pet: {{ pet_type }}{% if style %}, style {{ style }}{% endif %}", NameInput)
    >>> template.render({"pet_type": "cat"}).text
    'Pet: cat'
    """

    def __init__(self, source: str, input_model: Type[BaseModel]):
        self.source = source
        self.input_model = input_model
        try:
            ast = _environment.parse(source)
        except JinjaTemplateSyntaxError as e:
            raise TemplateSyntaxError(f"Could not parse template: {e}") from e

        self.nodes: tuple[Node, ...] = self._compile(ast.body)

        media = list(self._media_refs(self.nodes))
        if len(media) > 1:
            raise TemplateSyntaxError("A template may contain at most one media reference")
        self.media_field: str | None = media[0].path[0] if media else None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(input_model={self.input_model.__name__}, nodes={len(self.nodes)})"

    # --- compilation ---
    def _compile(self, body: list[jinja_nodes.Node]) -> tuple[Node, ...]:
        compiled: list[Node] = []
        for node in body:
            if isinstance(node, jinja_nodes.Output):
                for child in node.nodes:
                    if isinstance(child, jinja_nodes.TemplateData):
                        compiled.append(Text(child.data))
                    elif isinstance(child, jinja_nodes.Call):
                        compiled.append(MediaRef(self._media_path(child)))
                    else:
                        compiled.append(FieldRef(self._resolve(child)))

            elif isinstance(node, jinja_nodes.If):
                if node.elif_ or node.else_:
                    raise TemplateSyntaxError(f"Line {node.lineno}: only plain '{{% if field %}}' blocks are supported")
                compiled.append(IfPresent(self._resolve(node.test), self._compile(node.body)))

            else:
                raise TemplateSyntaxError(f"Line {node.lineno}: unsupported template construct '{type(node).__name__}'")

        return tuple(compiled)

    def _media_path(self, call: jinja_nodes.Call) -> tuple[str, ...]:
        if not (isinstance(call.node, jinja_nodes.Name) and call.node.name == MEDIA_FUNCTION):
            raise TemplateSyntaxError(f"Line {call.lineno}: only '{MEDIA_FUNCTION}(field)' calls are supported")

        # media(field) or media(url=field)
        args = list(call.args) + [kw.value for kw in call.kwargs if kw.key == "url"]
        if len(args) != 1 or call.dyn_args is not None or call.dyn_kwargs is not None:
            raise TemplateSyntaxError(f"Line {call.lineno}: '{MEDIA_FUNCTION}' takes exactly one field reference")

        path = self._resolve(args[0])
        if len(path) != 1:
            raise TemplateSyntaxError(f"Line {call.lineno}: media must reference a top-level field")
        return path

    def _resolve(self, expr: jinja_nodes.Node) -> tuple[str, ...]:
        """Turn a Name/Getattr expression into an attribute path declared by the input model."""
        raw: list[str] = []
        while isinstance(expr, jinja_nodes.Getattr):
            raw.insert(0, expr.attr)
            expr = expr.node
        if not isinstance(expr, jinja_nodes.Name):
            raise TemplateSyntaxError(
                f"Line {expr.lineno}: expected a field reference, found '{type(expr).__name__}'"
            )
        raw.insert(0, expr.name)

        model: Type[BaseModel] | None = self.input_model
        path: list[str] = []
        for name in raw:
            if model is None:
                raise TemplateSyntaxError(f"'{'.'.join(raw)}' descends into a field that is not a model")
            attr = _attribute_name(model, name)
            if attr is None:
                raise TemplateSyntaxError(f"Template references undeclared field '{'.'.join(raw)}'")
            path.append(attr)
            model = _nested_model(model.model_fields[attr].annotation)
        return tuple(path)

    @classmethod
    def _media_refs(cls, compiled: tuple[Node, ...]):
        for node in compiled:
            if isinstance(node, MediaRef):
                yield node
            elif isinstance(node, IfPresent):
                yield from cls._media_refs(node.body)

    # --- rendering ---
    def render(self, value: dict[str, Any] | BaseModel) -> RenderedPrompt:
        """Render the template.

        Parameters
        ----------
        value : dict[str, Any] | BaseModel
            Template input; validated against the input model first.

        Returns
        -------
        RenderedPrompt
            Text with any media attachment in template order.

        Raises
        ------
        SchemaValidationError
            If the value does not satisfy the input model.
        InvalidMediaFormat
            If the media field is not an image data uri.
        """
        data = validate(self.input_model, value)

        # media is checked up front so a bad payload fails regardless of where it sits
        if self.media_field is not None:
            parse_data_uri(getattr(data, self.media_field), self.media_field)

        parts: list[str | MediaAttachment] = []
        self._render_nodes(self.nodes, data, parts)
        return RenderedPrompt.from_parts(parts)

    def _render_nodes(self, compiled: tuple[Node, ...], data: BaseModel, parts: list[str | MediaAttachment]) -> None:
        for node in compiled:
            if isinstance(node, Text):
                parts.append(node.text)
            elif isinstance(node, FieldRef):
                parts.append(to_text(_lookup(data, node.path)))
            elif isinstance(node, IfPresent):
                if is_present(_lookup(data, node.path)):
                    self._render_nodes(node.body, data, parts)
            elif isinstance(node, MediaRef):
                parts.append(parse_data_uri(_lookup(data, node.path), node.path[0]))
            else:
                raise TypeError(f"Invalid template node: {node!r}")


def _attribute_name(model: Type[BaseModel], name: str) -> str | None:
    if name in model.model_fields:
        return name
    for attr, info in model.model_fields.items():
        if info.alias == name:
            return attr
    return None


def _nested_model(annotation: Any) -> Type[BaseModel] | None:
    """Return the model type behind an annotation like ``Model`` or ``Model | None``."""
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    if get_origin(annotation) is not None:
        models = [a for a in get_args(annotation) if isinstance(a, type) and issubclass(a, BaseModel)]
        if len(models) == 1:
            return models[0]
    return None


def _lookup(data: BaseModel, path: tuple[str, ...]) -> Any:
    value: Any = data
    for attr in path:
        if value is None:
            return None
        value = getattr(value, attr)
    return value


def is_present(value: Any) -> bool:
    """Presence test for conditional blocks; 0 and False count as present."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def to_text(value: Any) -> str:
    """Format a field value for interpolation."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True, exclude_none=True)
    if isinstance(value, (list, tuple)):
        return ", ".join(to_text(v) for v in value)
    return str(value)
