"""Built-in tile types.

Each module is named after its tile type in snake_case and exposes
``REQUIRED_PARAMS``, ``build_request(params)``, ``validate``, ``transform``
and ``strategy``.
"""
