"""
Built-in Chapbook insert and modifier catalog.

Entries are searched in order and the first whose pattern matches wins, so a
more specific pattern (``no ambient sound``) must not be shadowed by a looser
one. All patterns are case-insensitive, as in Chapbook itself.
"""

import re

from .types import (
    ArgumentRequirement,
    Descriptor,
    FirstArgument,
    InsertProperty,
    ModifierBlock,
    ValueType,
)

_I = re.IGNORECASE


def _required(placeholder: str | None = None, type_: ValueType | None = None) -> FirstArgument:
    return FirstArgument(required=ArgumentRequirement.REQUIRED, placeholder=placeholder, type=type_)


def _optional(placeholder: str | None = None, type_: ValueType | None = None) -> FirstArgument:
    return FirstArgument(required=ArgumentRequirement.OPTIONAL, placeholder=placeholder, type=type_)


_IGNORED = FirstArgument(required=ArgumentRequirement.IGNORED)


# =============================================================================
# Inserts
# =============================================================================

BUILTIN_INSERTS: tuple[Descriptor, ...] = (
    Descriptor(
        name="ambient sound",
        syntax="{ambient sound: 'sound name', _volume: 0.5_}",
        description=(
            "Begins playing a previously-defined ambient sound. `volume` can be omitted; "
            "by default, the ambient sound is played at full volume."
        ),
        match=re.compile(r"^ambient\s+sound", _I),
        completions=("ambient sound",),
        first_argument=_required("'sound name'"),
        optional_props={"volume": InsertProperty(placeholder="0.5", type=ValueType.NUMBER)},
    ),
    Descriptor(
        name="back link",
        syntax="{back link, _label: 'label'_}",
        description=(
            "Renders a link to the previous passage. `label` can be omitted; "
            "Chapbook will default to using 'Back'."
        ),
        match=re.compile(r"^back\s+link", _I),
        completions=("back link",),
        first_argument=_IGNORED,
        optional_props={"label": "'Back'"},
    ),
    Descriptor(
        name="cycling link",
        syntax="{cycling link _for: 'variable name'_, choices: ['one', 'two', 'three']}",
        description=(
            "Renders a link that cycles through the options listed in `choices`, saving the "
            "option the player selected to the variable named. `for 'variable name'` can be "
            "omitted; Chapbook will not save the selected value anywhere."
        ),
        match=re.compile(r"^cycling\s+link(\s+for)?", _I),
        completions=("cycling link",),
        first_argument=_optional("'variableName'"),
        optional_props={"choices": "['one', 'two', 'three']"},
    ),
    Descriptor(
        name="dropdown menu",
        syntax="{dropdown menu _for: 'variable name'_, choices: ['one', 'two', 'three']}",
        description=(
            "Renders a dropdown menu that runs through the options listed in `choices`, "
            "saving the option the player selected to the variable named. "
            "`for 'variable name'` can be omitted; Chapbook will not save the selected value anywhere."
        ),
        match=re.compile(r"^dropdown\s+menu(\s+for)?", _I),
        completions=("dropdown menu",),
        first_argument=_optional("'variableName'"),
        required_props={"choices": "['one', 'two', 'three']"},
    ),
    Descriptor(
        name="embed Flickr",
        syntax=(
            "{embed Flickr image: 'embed code', alt: 'alternate text'}\n"
            "{embed Flickr: 'embed code', alt: 'alternate text'}"
        ),
        description="Renders an image hosted on Flickr with alt text specified by `alt`.",
        match=re.compile(r"^embed\s+flickr(\s+image)?", _I),
        completions=("embed Flickr",),
        first_argument=_required('"embed code"'),
        optional_props={"alt": '"alternate text"'},
    ),
    Descriptor(
        name="embed image",
        syntax="{embed image: 'url', alt: 'alternate text'}",
        description="Renders an image at a URL with alt text specified by `alt`.",
        match=re.compile(r"^embed\s+image", _I),
        completions=("embed image",),
        first_argument=_required("'url'"),
        optional_props={"alt": "'alternate text'"},
    ),
    Descriptor(
        name="embed passage",
        syntax="{embed passage named: 'passage name'}\n{embed passage: 'passage name'}",
        description=(
            "Renders the passage named in the insert. "
            "This executes any vars section in that passage."
        ),
        match=re.compile(r"^embed\s+passage(\s+named)?", _I),
        completions=("embed passage",),
        first_argument=_required('"passage name"', ValueType.PASSAGE),
    ),
    Descriptor(
        name="embed Unsplash image",
        syntax=(
            "{embed Unsplash image: 'URL', alt: 'alternate text'}\n"
            "{embed Unsplash: 'URL', alt: 'alternate text'}"
        ),
        description="Renders an image hosted on Unsplash with alt text specified by `alt`.",
        match=re.compile(r"^embed\s+unsplash(\s+image)?", _I),
        completions=("embed Unsplash",),
        first_argument=_required("'url'"),
        optional_props={"alt": "'alternate text'"},
    ),
    Descriptor(
        name="embed YouTube video",
        syntax="{embed YouTube video: 'URL', _autoplay: true_, _loop: true_}",
        description="Renders a video player for a video hosted on YouTube.",
        match=re.compile(r"^embed\s+youtube(\s+video)?", _I),
        completions=("embed YouTube",),
        first_argument=_required("'url'"),
        optional_props={"autoplay": "true", "loop": "true"},
    ),
    Descriptor(
        name="link to",
        syntax="{link to: 'passage name or URL', _label: 'label'_}",
        description=(
            "Renders a link to a passage name or address. `label` may be omitted; "
            "Chapbook will use the passage name or URL as label instead."
        ),
        match=re.compile(r"^link\s+to", _I),
        completions=("link to",),
        first_argument=_required("'passage name or URL'", ValueType.URL_OR_PASSAGE),
        optional_props={"label": "'label'"},
    ),
    Descriptor(
        # {no ambient sound} is {ambient sound} with no first argument under the
        # hood, so the argument is optional here
        name="no ambient sound",
        syntax="{no ambient sound}",
        description="Cancels all playing ambient sounds.",
        match=re.compile(r"^no\s+ambient\s+sound", _I),
        completions=("no ambient sound",),
        first_argument=_optional(),
    ),
    Descriptor(
        name="restart link",
        syntax="{restart link, _label: 'label'_}",
        description=(
            "Renders a link that restarts the story from the beginning. `label` can be "
            "omitted; Chapbook will default to using 'Restart'."
        ),
        match=re.compile(r"^restart\s+link", _I),
        completions=("restart link",),
        first_argument=_IGNORED,
        optional_props={"label": "'label'"},
    ),
    Descriptor(
        name="reveal link",
        syntax=(
            "{reveal link: 'label', text: 'revealed text'}\n"
            "{reveal link: 'label', passage: 'passage name'}"
        ),
        description=(
            "Renders a link that, when clicked, is replaced by the text given or the "
            "contents of the passage named. If both are given, `text` wins."
        ),
        match=re.compile(r"^reveal\s+link", _I),
        completions=("reveal link",),
        first_argument=_required("'label'"),
        optional_props={
            "text": "'revealed text'",
            "passage": InsertProperty(placeholder="'passage name'", type=ValueType.PASSAGE),
        },
    ),
    Descriptor(
        name="sound effect",
        syntax="{sound effect: 'sound name', _volume: 0.5_}",
        description=(
            "Plays a previously-defined sound effect once. `volume` can be omitted; "
            "by default, the sound is played at full volume."
        ),
        match=re.compile(r"^sound\s+effect", _I),
        completions=("sound effect",),
        first_argument=_required("'sound name'"),
        optional_props={"volume": InsertProperty(placeholder="0.5", type=ValueType.NUMBER)},
    ),
    Descriptor(
        name="text input",
        syntax="{text input _for: 'variable name'_, _required: false_}",
        description=(
            "Renders a text field, saving the text entered to the variable named. "
            "The field must be filled in before the player can follow a link unless "
            "`required` is false."
        ),
        match=re.compile(r"^text\s+input(\s+for)?", _I),
        completions=("text input",),
        first_argument=_optional("'variable name'"),
        optional_props={"required": "false"},
    ),
    Descriptor(
        name="theme switcher",
        since="2.1",
        syntax="{theme switcher, _darkLabel: 'label'_, _lightLabel: 'label'_}",
        description=(
            "Renders a link that switches between light and dark themes. `darkLabel` and "
            "`lightLabel` set the label shown when the theme is currently dark or light."
        ),
        match=re.compile(r"^theme\s+switcher", _I),
        completions=("theme switcher",),
        first_argument=_IGNORED,
        optional_props={
            "darkLabel": InsertProperty(placeholder="'label'"),
            "lightLabel": InsertProperty(placeholder="'label'"),
        },
    ),
)


# =============================================================================
# Modifiers
# =============================================================================

BUILTIN_MODIFIERS: tuple[Descriptor, ...] = (
    Descriptor(
        name="after",
        syntax="[after _time_]",
        description=(
            "Causes the text to appear after a certain amount of time has passed "
            "after the passage is first displayed."
        ),
        match=re.compile(r"^after\s", _I),
        completions=("after",),
        first_argument=_required("1 second"),
    ),
    Descriptor(
        name="align",
        syntax="[align center], [align left], [align right]",
        description=(
            "Causes the text to be aligned `left`, `center`, or `right`. Aligning left "
            "isn't needed under normal circumstances, but is included for completeness's "
            "sake; use `[continue]` instead."
        ),
        match=re.compile(r"^align\s+(left|right|center)", _I),
        completions=("align left", "align right", "align center"),
    ),
    Descriptor(
        name="append",
        syntax="[append]",
        description=(
            "Used in conjunction with another modifier to have text immediately follow "
            "the text preceding it, instead of appearing in a new paragraph."
        ),
        match=re.compile(r"^append$", _I),
        completions=("append",),
    ),
    Descriptor(
        name="conditionals",
        syntax="[if _condition_], [ifalways _condition_], [ifnever _condition_], [unless _condition_], [else]",
        description=(
            "Displays the text only if the condition is true (`if`) or false (`unless`). "
            "`[else]` displays its text if the preceding condition failed."
        ),
        match=re.compile(r"^if(always|never)?\s|else$|unless\s", _I),
        completions=("if", "ifalways", "ifnever", "else", "unless"),
        first_argument=_optional("condition", ValueType.EXPRESSION),
    ),
    Descriptor(
        name="continue",
        syntax="[continue], [cont'd], [cont]",
        description="Ends the text affected by the preceding modifier.",
        match=re.compile(r"^continued?|cont('d)?$", _I),
        completions=("continue",),
        block=ModifierBlock.CONTINUE,
    ),
    Descriptor(
        name="CSS",
        syntax="[CSS]",
        description=(
            "Acts like a `<style>` tag in the passage; the contents of the text "
            "will be interpreted as CSS rules instead of normal text."
        ),
        match=re.compile(r"^css$", _I),
        completions=("CSS",),
        block=ModifierBlock.CSS,
    ),
    Descriptor(
        name="JavaScript",
        syntax="[JavaScript]",
        description=(
            "Acts like a `<script>` tag in the passage; the contents of the text will be "
            "interpreted as JavaScript code instead of normal text. To write output from "
            "inside the text, use the function `write()`."
        ),
        match=re.compile(r"^javascript$", _I),
        completions=("JavaScript",),
        block=ModifierBlock.JAVASCRIPT,
    ),
    Descriptor(
        name="note",
        syntax="[note to self], [note], [todo], [fixme]",
        description=(
            "Causes the text to never be visible to the player. This is useful for "
            "leaving notes or other information for yourself."
        ),
        match=re.compile(r"^(note(\s+to\s+myself)?|n\.?b\.?|todo|fixme)$", _I),
        completions=("note",),
        block=ModifierBlock.NOTE,
    ),
)


def all_builtin_inserts() -> tuple[Descriptor, ...]:
    """All built-in inserts, in match-priority order."""
    return BUILTIN_INSERTS


def all_builtin_modifiers() -> tuple[Descriptor, ...]:
    """All built-in modifiers, in match-priority order."""
    return BUILTIN_MODIFIERS


def find_builtin_insert(text: str) -> Descriptor | None:
    return next((d for d in BUILTIN_INSERTS if d.matches(text)), None)


def find_builtin_modifier(text: str) -> Descriptor | None:
    return next((d for d in BUILTIN_MODIFIERS if d.matches(text)), None)
