from flask import request, current_app


def request_data():
    """JSON body, or form fields for multipart requests."""
    if request.files or request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


def limit_arg(default=None, name='limit'):
    default = default or current_app.config['DEFAULT_PAGE_SIZE']
    limit = request.args.get(name, default, type=int)
    return max(1, min(limit, current_app.config['MAX_PAGE_SIZE']))


def bool_arg(name):
    return request.args.get(name, '').lower() in ('1', 'true', 'yes')


LIKE_ESCAPE = '\\'


def like_pattern(text):
    """Substring pattern for LIKE/ILIKE with the wildcards in ``text`` taken literally."""
    for char in (LIKE_ESCAPE, '%', '_'):
        text = text.replace(char, LIKE_ESCAPE + char)
    return f'%{text}%'
