"""
Form-building capability.

Form definitions do not subclass a form base class: they receive a
FormBuilder and describe their fields through it. Form is the builder
implementation used by the service, it also validates and cleans submitted
data against the rules the definition registered.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from ..richtext.tree import contains_text, parse_fragment, text_content

PARAM_TEXT = "text"
PARAM_RAW = "raw"
PARAM_INT = "int"


@dataclass
class FormRule:
    type: str  # "required" | "maxlength"
    message: str
    argument: Any = None


@dataclass
class FormField:
    """
    One form element.

    Attributes:
        type: text, editor, checkbox, select, static, html, hidden, group,
            submit or cancel
        name: Field name, unique within a form
        label: Visible label
        value: Content of html/static elements, button label for buttons
        options: Choices of a select, in display order
        attributes: Extra markup attributes
        config: Element configuration (editor options)
        elements: Members of a group
    """

    type: str
    name: str
    label: str = ""
    value: Any = None
    options: Dict[Any, str] = field(default_factory=dict)
    attributes: Dict[str, str] = field(default_factory=dict)
    config: Dict[str, Any] = field(default_factory=dict)
    elements: List["FormField"] = field(default_factory=list)
    frozen: bool = False
    help: Optional[Tuple[str, str]] = None
    rules: List[FormRule] = field(default_factory=list)
    param_type: Optional[str] = None


class FormBuilder(Protocol):
    """What a form definition needs from the form library."""

    def add_field(self, form_field: FormField) -> FormField: ...

    def add_rule(self, name: str, rule_type: str, message: str, argument: Any = None) -> None: ...

    def set_default(self, name: str, value: Any) -> None: ...

    def set_type(self, name: str, param_type: str) -> None: ...

    def freeze(self, name: str) -> None: ...

    def disabled_if(self, name: str, dependency: str, condition: str = "checked") -> None: ...

    def add_help_button(self, name: str, identifier: str, component: str) -> None: ...


class Form:
    """Ordered collection of fields with defaults, rules and dependencies."""

    def __init__(self, form_id: str = "mform"):
        self.form_id = form_id
        self._fields: Dict[str, FormField] = {}
        self.defaults: Dict[str, Any] = {}
        self.dependencies: Dict[str, List[Tuple[str, str]]] = {}

    def __iter__(self) -> Iterator[FormField]:
        return iter(self._fields.values())

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    @property
    def names(self) -> List[str]:
        return list(self._fields)

    def field(self, name: str) -> FormField:
        try:
            return self._fields[name]
        except KeyError:
            raise KeyError(f"Form has no field '{name}'") from None

    # FormBuilder ------------------------------------------------------------

    def add_field(self, form_field: FormField) -> FormField:
        if form_field.name in self._fields:
            raise ValueError(f"Duplicate form field '{form_field.name}'")
        self._fields[form_field.name] = form_field
        return form_field

    def add_rule(self, name: str, rule_type: str, message: str, argument: Any = None) -> None:
        if rule_type not in ("required", "maxlength"):
            raise ValueError(f"Unsupported rule type '{rule_type}'")
        self.field(name).rules.append(FormRule(type=rule_type, message=message, argument=argument))

    def set_default(self, name: str, value: Any) -> None:
        self.defaults[name] = value

    def set_type(self, name: str, param_type: str) -> None:
        self.field(name).param_type = param_type

    def freeze(self, name: str) -> None:
        self.field(name).frozen = True

    def disabled_if(self, name: str, dependency: str, condition: str = "checked") -> None:
        # The dependent field may be added later
        self.dependencies.setdefault(name, []).append((dependency, condition))

    def add_help_button(self, name: str, identifier: str, component: str) -> None:
        self.field(name).help = (identifier, component)

    # Submission -------------------------------------------------------------

    def validate(self, data: Dict[str, Any]) -> Dict[str, str]:
        """
        Apply the registered rules.

        Args:
            data: Submitted values; editor values may be {"text": ...} dicts

        Returns:
            Mapping of field name to the first failing rule's message
        """
        errors: Dict[str, str] = {}
        for form_field in self._fields.values():
            value = _submitted_text(data.get(form_field.name))
            for rule in form_field.rules:
                if rule.type == "required" and _is_empty(form_field, value):
                    errors[form_field.name] = rule.message
                    break
                if rule.type == "maxlength" and value is not None and len(value) > int(rule.argument):
                    errors[form_field.name] = rule.message
                    break
        return errors

    def clean(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Submitted values of known fields, converted by their parameter type."""
        cleaned: Dict[str, Any] = {}
        for name, form_field in self._fields.items():
            if name not in data or form_field.frozen:
                continue
            value = data[name]
            if form_field.param_type == PARAM_INT:
                cleaned[name] = _to_int(value)
            elif form_field.param_type == PARAM_TEXT:
                cleaned[name] = text_content(parse_fragment(_submitted_text(value) or "")).strip()
            else:
                cleaned[name] = value
        return cleaned


def _submitted_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("text")
        if value is None:
            return None
    return str(value)


def _is_empty(form_field: FormField, value: Optional[str]) -> bool:
    if value is None:
        return True
    if form_field.type == "editor":
        return not contains_text(parse_fragment(value))
    return not value.strip()


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
