import json
import os


def detect_format(filepath: str) -> str:
    """
    Return 'terraform_plan', 'terraform_state', or 'unknown'.
    """
    _, ext = os.path.splitext(filepath.lower())
    if ext != ".json":
        return "unknown"

    try:
        with open(filepath, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return "unknown"

    if not isinstance(data, dict):
        return "unknown"
    if "planned_values" in data:
        return "terraform_plan"
    # `terraform show -json` without a plan file prints the current state
    if "values" in data and "terraform_version" in data:
        return "terraform_state"
    return "unknown"
