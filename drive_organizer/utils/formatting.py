def format_size(num_bytes: int) -> str:
    """Render a byte count the way the per-file header shows it (1024 based)."""
    if num_bytes <= 0:
        return "N/A"

    unit = 1024
    if num_bytes < unit:
        return f"{num_bytes} B"

    div, exp = unit, 0
    n = num_bytes // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit

    return f"{num_bytes / div:.1f} {'KMGTPE'[exp]}B"
