def extract_validation_error_message(errors, prefix=""):
    """
    Flatten serializer errors into one readable message.

    Handles DRF ``serializer.errors`` (nested dicts and per-item lists for
    ``many=True``) as well as Django and DRF ``ValidationError`` instances.
    Only the first error is reported, prefixed with its field path.
    """
    if hasattr(errors, "message_dict") and errors.message_dict:
        errors = errors.message_dict
    elif hasattr(errors, "detail"):
        errors = errors.detail
    elif hasattr(errors, "messages") and errors.messages:
        errors = errors.messages

    if isinstance(errors, dict):
        for field, value in errors.items():
            if _is_index(field):
                # Newer DRF reports ``many=True`` errors keyed by item index
                path = f"{prefix}[{field}]" if prefix else str(field)
            else:
                path = f"{prefix}.{field}" if prefix else str(field)
            if field == "non_field_errors":
                path = prefix
            message = extract_validation_error_message(value, path)
            if message:
                return message
        return ""

    if isinstance(errors, (list, tuple)):
        for index, value in enumerate(errors):
            if isinstance(value, (dict, list)):
                message = extract_validation_error_message(
                    value, f"{prefix}[{index}]" if prefix else str(index)
                )
            else:
                message = extract_validation_error_message(value, prefix)
            if message:
                return message
        return ""

    text = str(errors)
    if not text:
        return ""
    return f"{prefix}: {text}" if prefix else text


def _is_index(key):
    if isinstance(key, bool):
        return False
    return isinstance(key, int) or (isinstance(key, str) and key.isdigit())
