from .exceptions import ConflictError


def ensure_transition(entity, current, target, transitions):
    """
    Raise ConflictError unless ``current -> target`` is listed in ``transitions``.

    ``transitions`` maps each status to the set of statuses it may move to.
    Statuses missing from the map are terminal.
    """
    if target not in transitions.get(current, ()):
        raise ConflictError(
            f"{entity} cannot move from '{current}' to '{target}'",
            current_status=current,
        )
