"""
Element location inside a compose surface.

Host markup is undocumented and drifts between releases, so every element is
found through an ordered chain: attribute selectors first, then structural
fallbacks. New shapes are supported by editing the tables below.
"""

from dataclasses import dataclass, fields
from typing import Callable

from extension.dom import HostElement

COMPOSE_SURFACE_SELECTOR = 'div[role="dialog"]'
MAIN_VIEW_SELECTOR = 'div[role="main"]'
TOOLBAR_SELECTOR = "tr.btC td.gU"
TOGGLE_FALLBACK_ANCHOR_SELECTOR = 'table[role="presentation"]'
EDITABLE_SELECTOR = 'div[contenteditable="true"]'
BUTTON_SELECTOR = 'div[role="button"]'
RECIPIENT_CHIP_SELECTOR = "[email], [data-hovercard-id]"
TO_INPUT_SELECTOR = 'input[aria-label="To recipients"], input[aria-label="To"]'
SUBJECT_INPUT_SELECTOR = 'input[name="subjectbox"], input[aria-label="Subject"]'

SEND_VERB = "Send"
MIN_BODY_HEIGHT = 50

Fallback = Callable[[HostElement], HostElement | None]


def largest_editable(surface: HostElement) -> HostElement | None:
    """Largest editable region by rendered height; small ones are single-line fields."""
    candidates = [
        element for element in surface.query_selector_all(EDITABLE_SELECTOR) if element.rendered_height > MIN_BODY_HEIGHT
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda element: element.rendered_height)


def send_verb_button(surface: HostElement) -> HostElement | None:
    for button in surface.query_selector_all(BUTTON_SELECTOR):
        label = button.get_attribute("aria-label") or ""
        if SEND_VERB in button.text_content or SEND_VERB in label:
            return button
    return None


def first_recipient_chip(surface: HostElement) -> HostElement | None:
    return surface.query_selector(RECIPIENT_CHIP_SELECTOR)


@dataclass(frozen=True)
class ElementLocator:
    name: str
    selectors: tuple[str, ...]
    fallbacks: tuple[Fallback, ...] = ()

    def locate(self, surface: HostElement) -> HostElement | None:
        for selector in self.selectors:
            element = surface.query_selector(selector)
            if element is not None:
                return element

        for fallback in self.fallbacks:
            element = fallback(surface)
            if element is not None:
                return element

        return None


@dataclass
class ComposeElements:
    body: HostElement | None = None
    to_field: HostElement | None = None
    subject: HostElement | None = None
    send_control: HostElement | None = None

    @property
    def missing(self) -> list[str]:
        return [item.name for item in fields(self) if getattr(self, item.name) is None]


COMPOSE_LOCATORS: dict[str, ElementLocator] = {
    locator.name: locator
    for locator in (
        ElementLocator(
            name="body",
            selectors=(
                'div[aria-label="Message Body"]',
                'div[g_editable="true"]',
                'div[contenteditable="true"].editable',
            ),
            fallbacks=(largest_editable,),
        ),
        ElementLocator(
            name="to_field",
            selectors=(
                'input[aria-label="To recipients"]',
                'input[aria-label="To"]',
                'textarea[aria-label="To recipients"]',
                'textarea[name="to"]',
            ),
            fallbacks=(first_recipient_chip,),
        ),
        ElementLocator(
            name="subject",
            selectors=('input[name="subjectbox"]', 'input[aria-label="Subject"]'),
        ),
        ElementLocator(
            name="send_control",
            selectors=('div[role="button"][aria-label*="Send"]', 'div[data-tooltip*="Send"]'),
            fallbacks=(send_verb_button,),
        ),
    )
}


def locate_compose_elements(
    surface: HostElement, locators: dict[str, ElementLocator] = COMPOSE_LOCATORS
) -> ComposeElements:
    """Resolve what can be found now; anything missing is left as None."""
    return ComposeElements(**{name: locator.locate(surface) for name, locator in locators.items()})


def extract_recipients(surface: HostElement) -> list[str]:
    """Addresses from recipient chips plus whatever is typed in the To input, first occurrence wins."""
    recipients: list[str] = []

    for chip in surface.query_selector_all(RECIPIENT_CHIP_SELECTOR):
        address = chip.get_attribute("email") or chip.get_attribute("data-hovercard-id")
        if address and "@" in address and address not in recipients:
            recipients.append(address)

    to_input = surface.query_selector(TO_INPUT_SELECTOR)
    if to_input is not None:
        typed = to_input.value
        if typed and "@" in typed and typed not in recipients:
            recipients.append(typed)

    return recipients


def extract_subject(surface: HostElement) -> str:
    subject_input = surface.query_selector(SUBJECT_INPUT_SELECTOR)
    return subject_input.value if subject_input is not None else ""
