"""Utility functions for the REST client.

Components:
    get_request_url: Expands a location's route template and appends the query string
    replace_route_values: Substitutes route values into a route template
    query_params_to_string: Renders query parameters, skipping None values

Example:
    ```python
    from ado_rest_client.utils import replace_route_values

    replace_route_values("{project}/_apis/git/repositories/{repositoryId}", {"project": "Foo"})
    # "Foo/_apis/git/repositories"
    ```
"""

from .routes import get_request_url, query_params_to_string, replace_route_values

__all__ = ["get_request_url", "query_params_to_string", "replace_route_values"]
