"""
Host page access for the content script.

The compose monitor never touches the page directly; it goes through the
HostElement / HostDocument protocols below. SoupDocument implements them over
a BeautifulSoup tree so the whole client side can run against a page snapshot
kept in sync by the browser bridge.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, Protocol

import soupsieve
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Layout is not computed here; the bridge mirrors offsetHeight into this attribute
OFFSET_HEIGHT_ATTRIBUTE = "data-offset-height"
# Python attribute on a bs4 Tag holding its SoupElement
WRAPPER_ATTRIBUTE = "_host_element"


@dataclass
class Event:
    type: str
    target: "HostElement | None" = None
    current_target: "HostElement | None" = None
    propagation_stopped: bool = False
    default_prevented: bool = False

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    def prevent_default(self) -> None:
        self.default_prevented = True


EventListener = Callable[[Event], None]


@dataclass
class MutationRecord:
    target: "HostElement"
    added_nodes: list["HostElement"] = field(default_factory=list)
    removed_nodes: list["HostElement"] = field(default_factory=list)


MutationCallback = Callable[[list[MutationRecord]], None]


class HostElement(Protocol):
    @property
    def tag_name(self) -> str: ...

    @property
    def parent(self) -> "HostElement | None": ...

    @property
    def first_child(self) -> "HostElement | None": ...

    @property
    def is_connected(self) -> bool: ...

    @property
    def text_content(self) -> str: ...

    @property
    def rendered_height(self) -> float: ...

    value: str
    checked: bool

    def get_attribute(self, name: str) -> str | None: ...

    def set_attribute(self, name: str, value: str) -> None: ...

    def remove_attribute(self, name: str) -> None: ...

    def has_attribute(self, name: str) -> bool: ...

    def matches(self, selector: str) -> bool: ...

    def closest(self, selector: str) -> "HostElement | None": ...

    def contains(self, other: "HostElement") -> bool: ...

    def query_selector(self, selector: str) -> "HostElement | None": ...

    def query_selector_all(self, selector: str) -> list["HostElement"]: ...

    def append_child(self, child: "HostElement") -> "HostElement": ...

    def insert_before(self, child: "HostElement", reference: "HostElement | None") -> "HostElement": ...

    def remove(self) -> None: ...

    def add_event_listener(self, type: str, listener: EventListener, capture: bool = False) -> None: ...

    def remove_event_listener(self, type: str, listener: EventListener, capture: bool = False) -> None: ...

    def dispatch_event(self, event: Event) -> bool: ...


class HostDocument(Protocol):
    @property
    def body(self) -> HostElement: ...

    def create_element(self, tag_name: str, attrs: dict[str, str] | None = None, text: str | None = None) -> HostElement: ...

    def query_selector(self, selector: str) -> HostElement | None: ...

    def query_selector_all(self, selector: str) -> list[HostElement]: ...

    def observe(self, callback: MutationCallback, root: HostElement | None = None) -> Callable[[], None]: ...


@dataclass(eq=False)
class _Observation:
    callback: MutationCallback
    root: "SoupElement | None"


class SoupElement:
    """One element of a SoupDocument. Each node has exactly one wrapper, so identity matches node identity."""

    def __init__(self, document: "SoupDocument", tag: Tag):
        self._document = document
        self.tag = tag
        self._listeners: list[tuple[str, EventListener, bool]] = []

    def __repr__(self) -> str:
        return f"<SoupElement {self.tag.name} {dict(self.tag.attrs)!r}>"

    @property
    def document(self) -> "SoupDocument":
        return self._document

    @property
    def tag_name(self) -> str:
        return self.tag.name

    @property
    def parent(self) -> "SoupElement | None":
        parent = self.tag.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return self._document.wrap(parent)

    @property
    def children(self) -> list["SoupElement"]:
        return [self._document.wrap(child) for child in self.tag.children if isinstance(child, Tag)]

    @property
    def first_child(self) -> "SoupElement | None":
        children = self.children
        return children[0] if children else None

    @property
    def is_connected(self) -> bool:
        return any(parent is self._document.soup for parent in self.tag.parents)

    @property
    def text_content(self) -> str:
        return self.tag.get_text()

    @text_content.setter
    def text_content(self, text: str) -> None:
        self.tag.string = text

    @property
    def value(self) -> str:
        if self.tag.name == "textarea":
            return self.tag.get_text()
        return self.get_attribute("value") or ""

    @value.setter
    def value(self, value: str) -> None:
        if self.tag.name == "textarea":
            self.tag.string = value
        else:
            self.set_attribute("value", value)

    @property
    def checked(self) -> bool:
        return self.has_attribute("checked")

    @checked.setter
    def checked(self, checked: bool) -> None:
        if checked:
            self.set_attribute("checked", "")
        else:
            self.remove_attribute("checked")

    @property
    def rendered_height(self) -> float:
        try:
            return float(self.get_attribute(OFFSET_HEIGHT_ATTRIBUTE) or 0)
        except ValueError:
            return 0.0

    def get_attribute(self, name: str) -> str | None:
        value = self.tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def set_attribute(self, name: str, value: str) -> None:
        self.tag[name] = value

    def remove_attribute(self, name: str) -> None:
        if name in self.tag.attrs:
            del self.tag[name]

    def has_attribute(self, name: str) -> bool:
        return name in self.tag.attrs

    def matches(self, selector: str) -> bool:
        return soupsieve.match(selector, self.tag)

    def closest(self, selector: str) -> "SoupElement | None":
        return self._document.wrap_optional(soupsieve.closest(selector, self.tag))

    def contains(self, other: "SoupElement") -> bool:
        return other is self or any(parent is self.tag for parent in other.tag.parents)

    def query_selector(self, selector: str) -> "SoupElement | None":
        return self._document.wrap_optional(soupsieve.select_one(selector, self.tag))

    def query_selector_all(self, selector: str) -> list["SoupElement"]:
        return [self._document.wrap(tag) for tag in soupsieve.select(selector, self.tag)]

    def append_child(self, child: "SoupElement") -> "SoupElement":
        return self.insert_before(child, None)

    def insert_before(self, child: "SoupElement", reference: "SoupElement | None") -> "SoupElement":
        if reference is not None and reference.parent is not self:
            raise ValueError("Reference node is not a child of this element")

        if child.tag.parent is not None:
            child.remove()

        if reference is None:
            self.tag.append(child.tag)
        else:
            reference.tag.insert_before(child.tag)

        self._document.record_mutation(MutationRecord(target=self, added_nodes=[child]))
        return child

    def append_html(self, markup: str) -> list["SoupElement"]:
        """Parse a fragment and append its top-level elements, the way the host injects new UI."""
        fragment = BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
        added = []
        for node in list(fragment.contents):
            node.extract()
            self.tag.append(node)
            if isinstance(node, Tag):
                added.append(self._document.wrap(node))

        if added:
            self._document.record_mutation(MutationRecord(target=self, added_nodes=added))
        return added

    def remove(self) -> None:
        parent = self.parent
        was_connected = self.is_connected
        self.tag.extract()
        if parent is not None and was_connected:
            self._document.record_mutation(MutationRecord(target=parent, removed_nodes=[self]))

    def add_event_listener(self, type: str, listener: EventListener, capture: bool = False) -> None:
        entry = (type, listener, capture)
        if entry not in self._listeners:
            self._listeners.append(entry)

    def remove_event_listener(self, type: str, listener: EventListener, capture: bool = False) -> None:
        entry = (type, listener, capture)
        if entry in self._listeners:
            self._listeners.remove(entry)

    def listeners_for(self, type: str, capture: bool) -> list[EventListener]:
        return [listener for (kind, listener, phase) in self._listeners if kind == type and phase == capture]

    def dispatch_event(self, event: Event) -> bool:
        return self._document.dispatch(self, event)

    def click(self) -> bool:
        return self.dispatch_event(Event("click"))


class SoupDocument:
    """HostDocument backed by BeautifulSoup with MutationObserver-style delivery."""

    def __init__(self, markup: str = ""):
        self.soup = BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
        if self.soup.body is None:
            body = self.soup.new_tag("body")
            for node in list(self.soup.contents):
                body.append(node.extract())
            self.soup.append(body)

        self._observations: list[_Observation] = []
        self._pending_records: list[MutationRecord] = []
        self._flush_scheduled = False

    @property
    def body(self) -> SoupElement:
        return self.wrap(self.soup.body)

    def wrap(self, tag: Tag) -> SoupElement:
        # Kept on the node itself so it is collected along with it
        element = tag.__dict__.get(WRAPPER_ATTRIBUTE)
        if element is None or element.document is not self:
            element = SoupElement(self, tag)
            tag.__dict__[WRAPPER_ATTRIBUTE] = element
        return element

    def wrap_optional(self, tag: Tag | None) -> SoupElement | None:
        return None if tag is None else self.wrap(tag)

    def create_element(self, tag_name: str, attrs: dict[str, str] | None = None, text: str | None = None) -> SoupElement:
        tag = self.soup.new_tag(tag_name, attrs=attrs or {})
        if text is not None:
            tag.string = text
        return self.wrap(tag)

    def query_selector(self, selector: str) -> SoupElement | None:
        return self.wrap_optional(soupsieve.select_one(selector, self.soup))

    def query_selector_all(self, selector: str) -> list[SoupElement]:
        return [self.wrap(tag) for tag in soupsieve.select(selector, self.soup)]

    def iter_elements(self) -> Iterator[SoupElement]:
        for tag in self.soup.find_all(True):
            yield self.wrap(tag)

    # Mutation observation

    def observe(self, callback: MutationCallback, root: SoupElement | None = None) -> Callable[[], None]:
        """Subscribe to subtree changes under root (the whole document when omitted)."""
        observation = _Observation(callback=callback, root=root)
        self._observations.append(observation)

        def disconnect() -> None:
            if observation in self._observations:
                self._observations.remove(observation)

        return disconnect

    def record_mutation(self, record: MutationRecord) -> None:
        if not self._observations or not record.target.is_connected:
            return

        self._pending_records.append(record)
        if self._flush_scheduled:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to batch on, deliver right away
            self.flush_mutations()
            return

        self._flush_scheduled = True
        loop.call_soon(self.flush_mutations)

    def flush_mutations(self) -> None:
        records, self._pending_records = self._pending_records, []
        self._flush_scheduled = False

        for observation in list(self._observations):
            if observation not in self._observations:
                continue

            selected = [
                record for record in records if observation.root is None or observation.root.contains(record.target)
            ]
            if not selected:
                continue

            try:
                observation.callback(selected)
            except Exception as e:
                logger.exception(f"Mutation observer failed; error: {e}")

    # Events

    def dispatch(self, target: SoupElement, event: Event) -> bool:
        """Run capture listeners root to target, then bubble listeners target to root."""
        event.target = target

        path = [target]
        parent = target.parent
        while parent is not None:
            path.append(parent)
            parent = parent.parent

        for element in reversed(path):
            if not self._invoke(element, event, capture=True):
                return not event.default_prevented

        for element in path:
            if not self._invoke(element, event, capture=False):
                break

        return not event.default_prevented

    def _invoke(self, element: SoupElement, event: Event, capture: bool) -> bool:
        event.current_target = element
        for listener in element.listeners_for(event.type, capture):
            try:
                listener(event)
            except Exception as e:
                logger.exception(f"Event listener failed; event: {event.type}, error: {e}")
        return not event.propagation_stopped
