"""
Panel layout resolution.

Turns the fixture's panelLayout/layout document into the ordered list of
LED-bearing panels. The order is what the color buffer passed to write()
must follow, so it is total and stable: sorted by row, then column, then
panel id.

Nanoleaf coordinates grow to the right (x) and upwards (y).
"""

import logging
from typing import Optional, Dict, List, Any, Iterable

from .errors import LayoutMismatch, ProtocolError
from .models import PanelDescriptor, LED_SHAPE_TYPES

try:
    import udi_interface
    LOGGER = udi_interface.LOGGER
except ImportError:
    LOGGER = logging.getLogger(__name__)


def parse_panels(layout: Dict[str, Any]) -> List[PanelDescriptor]:
    """
    Parse every panel in a layout document.

    Args:
        layout: JSON object with a 'positionData' array

    Returns:
        Panels in document order (LED and non-LED)
    """
    if not isinstance(layout, dict) or not isinstance(layout.get('positionData'), list):
        raise ProtocolError("Panel layout has no 'positionData' array")

    panels = []
    for entry in layout['positionData']:
        try:
            panels.append(PanelDescriptor.from_json(entry))
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed panel record {entry!r}: {e}")

    num_panels = layout.get('numPanels')
    if isinstance(num_panels, int) and num_panels != len(panels):
        LOGGER.warning(f"Layout reports {num_panels} panels but lists {len(panels)}")

    return panels


def has_leds(shape_type: int, led_shape_types: Optional[Iterable[int]] = None) -> bool:
    """Check if a panel shape type carries LEDs"""
    allowed = LED_SHAPE_TYPES if led_shape_types is None else led_shape_types
    return shape_type in allowed


def order_panels(panels: Iterable[PanelDescriptor], top_down: bool = True,
                 left_right: bool = True) -> List[PanelDescriptor]:
    """
    Sort panels into streaming order.

    Args:
        panels: Panels to order
        top_down: True for highest row first, False for lowest row first
        left_right: True for lowest x first, False for highest x first

    Returns:
        New list, ties on position broken by ascending panel id
    """
    y_sign = -1 if top_down else 1
    x_sign = 1 if left_right else -1
    return sorted(panels, key=lambda p: (y_sign * p.y, x_sign * p.x, p.panel_id))


def resolve_layout(layout: Dict[str, Any], top_down: bool = True, left_right: bool = True,
                   led_shape_types: Optional[Iterable[int]] = None,
                   expected_count: int = 0) -> List[PanelDescriptor]:
    """
    Filter a layout to LED panels and order them.

    Args:
        layout: panelLayout/layout document
        top_down: Vertical ordering flag
        left_right: Horizontal ordering flag
        led_shape_types: Override of the LED-bearing shape set
        expected_count: Configured LED count, 0 to accept any

    Returns:
        Ordered LED panels

    Raises:
        LayoutMismatch: no LED panels, or count differs from expected_count
        ProtocolError: layout document is malformed
    """
    allowed = None if led_shape_types is None else frozenset(led_shape_types)
    led_panels = []
    for panel in parse_panels(layout):
        if has_leds(panel.shape_type, allowed):
            led_panels.append(panel)
        else:
            LOGGER.debug(f"Panel {panel.panel_id} ({panel.shape_name}) has no LEDs, skipped")

    ids = [p.panel_id for p in led_panels]
    if len(set(ids)) != len(ids):
        raise ProtocolError(f"Duplicate panel ids in layout: {sorted(ids)}")

    if not led_panels:
        raise LayoutMismatch("Fixture reports no LED panels")

    if expected_count and expected_count != len(led_panels):
        raise LayoutMismatch(
            f"Fixture has {len(led_panels)} LED panels but {expected_count} are configured")

    return order_panels(led_panels, top_down, left_right)
