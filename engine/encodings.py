"""
Per-chart encoding state.

Encodings are a plain dict keyed by channel name. A channel key exists only
while a field sits on it. Every function here returns a new dict and leaves
its input untouched.
"""

import logging

from engine.constants import (
    AGGREGATES_BY_TYPE,
    CHANNELS,
    DEFAULT_TIME_UNIT,
    NOMINAL,
    ORDINAL,
    SORT_ORDERS,
    TEMPORAL,
    TIME_UNITS,
)

logger = logging.getLogger(__name__)


def allowed_aggregates(field_type):
    return AGGREGATES_BY_TYPE.get(field_type, ())


def new_assignment(field):
    return {
        "field": dict(field),
        "aggregate": None,
        "timeUnit": DEFAULT_TIME_UNIT if field["type"] == TEMPORAL else None,
        "sort": None,
    }


def _known_channel(channel):
    if channel not in CHANNELS:
        logger.warning("Ignoring unknown channel '%s'", channel)
        return False
    return True


# ---------------------------------------------------------
# Channel assignment
# ---------------------------------------------------------
def assign_field(encodings, channel, field):
    if not _known_channel(channel):
        return encodings
    return {**encodings, channel: new_assignment(field)}


def remove_field(encodings, channel):
    if channel not in encodings:
        return encodings
    return {k: v for k, v in encodings.items() if k != channel}


def _update_assignment(encodings, channel, **changes):
    existing = encodings.get(channel)
    if existing is None:
        return encodings
    return {**encodings, channel: {**existing, **changes}}


# ---------------------------------------------------------
# Aggregate / time unit / sort
# ---------------------------------------------------------
def set_aggregate(encodings, channel, aggregate):
    existing = encodings.get(channel)
    if existing is None:
        return encodings

    field_type = existing["field"]["type"]
    if aggregate is not None and aggregate not in allowed_aggregates(field_type):
        logger.warning(
            "Aggregate '%s' is not allowed for %s field '%s'",
            aggregate, field_type, existing["field"]["name"],
        )
        return encodings

    return _update_assignment(encodings, channel, aggregate=aggregate)


def set_time_unit(encodings, channel, time_unit):
    if time_unit is not None and time_unit not in TIME_UNITS:
        logger.warning("Ignoring unknown time unit '%s'", time_unit)
        return encodings
    return _update_assignment(encodings, channel, timeUnit=time_unit)


def set_sort(encodings, channel, sort):
    if sort is not None and sort not in SORT_ORDERS:
        logger.warning("Ignoring unknown sort order '%s'", sort)
        return encodings
    return _update_assignment(encodings, channel, sort=sort)


# ---------------------------------------------------------
# Ordinal <-> nominal toggle
# ---------------------------------------------------------
def toggle_type(field_type):
    return NOMINAL if field_type == ORDINAL else ORDINAL


def toggle_field_type(encodings, field_name):
    """Flip every assignment that references `field_name`."""
    updated = {}
    for channel, assignment in encodings.items():
        field = assignment["field"]
        if field["name"] == field_name:
            field = {**field, "type": toggle_type(field["type"])}
            assignment = {**assignment, "field": field}
        updated[channel] = assignment
    return updated
