"""Typed rendering of service descriptors.

Text templates use ``string.Template`` placeholders (``${name}``). Rendering
fails loudly instead of leaving a placeholder behind or silently dropping a
field.
"""

from collections.abc import Iterable, Mapping
from string import Template

from noctum_installer.errors import TemplateError


def check_fields(declared: Iterable[str], fields: Mapping[str, str]) -> None:
    """Require *fields* to supply exactly the *declared* names.

    Raises:
        TemplateError: If a declared name has no field, or a field is not
            declared.
    """
    declared = set(declared)
    missing = declared - fields.keys()
    if missing:
        raise TemplateError(f"No value for placeholder(s): {', '.join(sorted(missing))}")
    unused = fields.keys() - declared
    if unused:
        raise TemplateError(f"Field(s) not used by template: {', '.join(sorted(unused))}")


def render_template(template: Template | str, fields: Mapping[str, str]) -> str:
    """Substitute *fields* into *template*.

    Raises:
        TemplateError: If the template is malformed, references a placeholder
            with no field, or a field is not referenced by the template.
    """
    tpl = template if isinstance(template, Template) else Template(template)
    if not tpl.is_valid():
        raise TemplateError("Template contains malformed placeholders")

    check_fields(tpl.get_identifiers(), fields)
    return tpl.substitute(fields)
