#!/usr/bin/env python3
"""
Mealie API Client
=================

Thin REST client for the Mealie endpoints the batch importer uses:
authentication, recipe create/read/update, and category (collection)
listing/creation.

Usage:
    from mealie_client import MealieClient, MealieClientError

    client = MealieClient.login("http://localhost:9925", "me@example.com", "secret")
    slug = client.create_recipe({"name": "Banana Bread"})
    client.update_recipe(slug, {"description": "Moist and easy"})
    client.close()

Architecture:
    MealieClient
    ├── Connection pooling via requests.Session
    ├── Retry with backoff for idempotent reads only (writes are single-attempt)
    └── Per-request timeout so a hung call fails instead of blocking the batch
"""

from typing import Any, Dict, List, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from tools.logging_utils import get_logger

# Module logger
logger = get_logger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class MealieClientError(Exception):
    """
    Base exception for MealieClient errors.

    Provides context about what operation failed and why.

    Attributes:
        message: Human-readable error description
        operation: The operation that failed (e.g., "create_recipe", "POST")
        details: Additional context (e.g., HTTP status code, response body)
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.operation = operation
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context."""
        parts = [self.message]
        if self.operation:
            parts.insert(0, f"[{self.operation}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)


class MealieAPIError(MealieClientError):
    """Exception raised for API-specific errors (HTTP failures, timeouts)."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if status_code is not None:
            details['status_code'] = status_code
        if response_body:
            # Truncate long response bodies
            details['response'] = response_body[:200] + "..." if len(response_body) > 200 else response_body
        super().__init__(message, operation, details)
        self.status_code = status_code
        self.response_body = response_body


# =============================================================================
# CLIENT
# =============================================================================

class MealieClient:
    """
    Mealie REST API client.

    Features:
    - HTTP connection pooling via requests.Session
    - Automatic retry with exponential backoff for transient GET failures
    - Comprehensive error handling with context
    """

    # Retry configuration (GET only - a retried POST could create duplicates)
    RETRY_TOTAL = 3
    RETRY_BACKOFF_FACTOR = 0.5
    RETRY_STATUS_FORCELIST = [429, 500, 502, 503, 504]

    # Default timeout (seconds)
    DEFAULT_TIMEOUT = 30

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = DEFAULT_TIMEOUT):
        """
        Initialize the client with connection pooling.

        Args:
            base_url: Mealie base URL (e.g., "http://localhost:9925")
            token: Mealie API token (JWT); may be set later by login()
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.api_base = f"{self.base_url}/api"
        self.timeout = timeout

        self.session = requests.Session()

        retry_strategy = Retry(
            total=self.RETRY_TOTAL,
            backoff_factor=self.RETRY_BACKOFF_FACTOR,
            status_forcelist=self.RETRY_STATUS_FORCELIST,
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount('http://', adapter)
        self.session.mount('https://', adapter)

        self.session.headers.update({'Accept': 'application/json'})
        if token:
            self.set_token(token)

        logger.debug(f"MealieClient initialized: base_url={self.base_url}")

    @classmethod
    def login(
        cls,
        base_url: str,
        email: str,
        password: str,
        timeout: int = DEFAULT_TIMEOUT
    ) -> "MealieClient":
        """
        Create a client authenticated with username/password.

        Mealie's token endpoint takes form-encoded credentials and returns
        a bearer token.

        Raises:
            MealieAPIError: If the credentials are rejected or the server is unreachable
        """
        client = cls(base_url, timeout=timeout)
        try:
            result = client._request(
                "POST",
                "/auth/token",
                form={'username': email, 'password': password},
            )
            token = result.get('access_token') if isinstance(result, dict) else None
            if not token:
                raise MealieAPIError("Login response contained no access_token", operation="login")
            client.set_token(token)
        except MealieClientError:
            client.close()
            raise

        logger.info(f"🔐 Logged into Mealie at {client.base_url} as {email}")
        return client

    def set_token(self, token: str) -> None:
        self.session.headers['Authorization'] = f'Bearer {token}'

    def close(self) -> None:
        """Clean up connections."""
        self.session.close()

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        form: Optional[Dict[str, Any]] = None,
        timeout: Optional[int] = None
    ) -> Union[Dict[str, Any], List[Any], str]:
        """
        Perform an HTTP request with error handling.

        Args:
            method: HTTP method (GET, POST, PATCH)
            endpoint: API endpoint (e.g., "/recipes" or "/recipes/{slug}")
            data: JSON body for POST/PATCH requests
            params: Query parameters
            form: Form-encoded body (used by the auth endpoint)
            timeout: Override default timeout

        Returns:
            Parsed JSON response, or empty dict for 204

        Raises:
            MealieAPIError: On HTTP or network errors
        """
        url = f"{self.api_base}{endpoint}"
        timeout = timeout or self.timeout

        try:
            if method == "GET":
                response = self.session.get(url, params=params, timeout=timeout)
            elif method == "POST":
                if form is not None:
                    response = self.session.post(url, data=form, params=params, timeout=timeout)
                else:
                    response = self.session.post(url, json=data, params=params, timeout=timeout)
            elif method == "PATCH":
                response = self.session.patch(url, json=data, timeout=timeout)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

            response.raise_for_status()

            # Handle empty responses (204 No Content, etc.)
            if response.status_code == 204 or not response.text:
                return {}

            return response.json()

        except requests.exceptions.HTTPError as e:
            # Response objects are falsy for 4xx/5xx, so compare against None
            error_response = e.response
            raise MealieAPIError(
                f"HTTP error: {e}",
                operation=method,
                status_code=error_response.status_code if error_response is not None else None,
                response_body=error_response.text if error_response is not None else None,
            ) from e
        except requests.exceptions.Timeout as e:
            raise MealieAPIError(
                f"Request timed out after {timeout}s",
                operation=method,
                details={'endpoint': endpoint, 'timeout': timeout},
            ) from e
        except requests.exceptions.RequestException as e:
            raise MealieAPIError(
                f"Network error: {e}",
                operation=method,
                details={'endpoint': endpoint},
            ) from e

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a GET request."""
        return self._request("GET", endpoint, params=params)

    def _post(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a POST request."""
        return self._request("POST", endpoint, data=data)

    def _patch(self, endpoint: str, data: Dict[str, Any]) -> Any:
        """Perform a PATCH request."""
        return self._request("PATCH", endpoint, data=data)

    def get_current_user(self) -> Dict[str, Any]:
        """Fetch the authenticated user (used to verify a token)."""
        return self._get('/users/self')

    # -------------------------------------------------------------------------
    # Recipe operations
    # -------------------------------------------------------------------------

    def get_recipe(self, slug: str) -> Dict[str, Any]:
        """Fetch a single recipe by slug."""
        return self._get(f'/recipes/{slug}')

    def create_recipe(self, data: Dict[str, Any]) -> str:
        """
        Create a new recipe manually.

        Mealie's CreateRecipe schema only accepts 'name' initially, so any
        further fields are applied with a follow-up PATCH.

        Args:
            data: Recipe data (must contain 'name')

        Returns:
            Slug of the created recipe

        Raises:
            MealieAPIError: If either call fails; a failed PATCH names the
                slug of the name-only recipe left in Mealie
        """
        if 'name' not in data:
            raise MealieClientError("Recipe data must contain 'name'", operation="create_recipe")

        result = self._post('/recipes', data={'name': data['name']})

        # Mealie may return a bare slug string or a dict with a slug field
        if isinstance(result, str):
            slug = result
        elif isinstance(result, dict):
            slug = result.get('slug', '')
        else:
            raise MealieClientError(
                f"Unexpected response type from recipe creation: {type(result).__name__}",
                operation="create_recipe"
            )

        if not slug:
            raise MealieClientError(
                "Recipe creation returned empty slug",
                operation="create_recipe",
                details={'response': str(result)[:200]}
            )

        update_data = {k: v for k, v in data.items() if k != 'name'}
        if update_data:
            try:
                self.update_recipe(slug, update_data)
            except MealieAPIError as e:
                # The name-only recipe stays behind; say where
                raise MealieAPIError(
                    f"Recipe '{slug}' was created but filling in its fields failed: {e.message}",
                    operation="create_recipe",
                    status_code=e.status_code,
                    response_body=e.response_body,
                    details={'slug': slug},
                ) from e

        return slug

    def update_recipe(self, slug: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update an existing recipe.

        Args:
            slug: Recipe slug (or ID)
            data: Fields to update

        Returns:
            Updated recipe data
        """
        return self._patch(f'/recipes/{slug}', data=data)

    # -------------------------------------------------------------------------
    # Category operations
    # -------------------------------------------------------------------------

    def get_all_categories(self) -> List[Dict[str, Any]]:
        """Fetch all categories."""
        data = self._get('/organizers/categories', params={'perPage': -1})
        return data.get('items', [])

    def create_category(self, name: str) -> Dict[str, Any]:
        """
        Create a new category.

        Args:
            name: Category name

        Returns:
            Created category data ({id, name, slug})
        """
        return self._post('/organizers/categories', data={'name': name})
