def tag_operations(result, generator, request=None, public=False):
    """Post-processing hook for drf-spectacular to add tags to operations.

    Group names follow the path prefixes of the sections in `api/urls.py`.
    """
    if not result or 'paths' not in result:
        return result

    # mapping of path prefix -> tag name (order matters; first match wins)
    mapping = [
        (('auth/',), 'Authentication'),
        (('audio/',), 'Audio'),
        (('favourite/',), 'Favourites'),
        (('playlist/',), 'Playlists'),
        (('profile/',), 'Profile'),
        (('history/',), 'History'),
    ]

    for path, path_item in result.get('paths', {}).items():
        # paths are rendered as /api/<section>/...
        normalized = path.lstrip('/')
        if normalized.startswith('api/'):
            normalized = normalized[len('api/'):]
        assigned = None
        for prefixes, tag in mapping:
            if normalized.startswith(prefixes):
                assigned = tag
                break

        if not assigned:
            assigned = 'Other'

        for method_name, operation in list(path_item.items()):
            if method_name.startswith('x-'):
                continue
            if isinstance(operation, dict):
                # keep existing tags, ours goes first
                existing = operation.get('tags') or []
                if assigned not in existing:
                    operation['tags'] = [assigned] + [tag for tag in existing if tag != 'api']

    return result
