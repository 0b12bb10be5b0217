from typing import Any, Awaitable, Callable

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from trellis_di.domain import Arguments, IContainer, Identifier


def create_fastapi_dependency(container: IContainer, identifier: Identifier, args: Arguments = None) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that resolves from the container.

    Sharing follows the container's rules: a shared identifier yields the same
    instance for every request, any other identifier is built per call.

    Args:
        container: The container to resolve from.
        identifier: Class or string identifier to resolve.
        args: Optional caller arguments passed on every resolution.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> container = Container()
        >>> container.rule(UserRepository).set_shared(True)
        >>>
        >>> get_user_repo = create_fastapi_dependency(container, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_user_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> Any:
        """Resolve the identifier from the container."""
        return container.get_args(identifier, args)

    return dependency


def create_request_dependency(identifier: Identifier) -> Callable[[Request], Any]:
    """Create a FastAPI dependency that resolves from the container attached to the request.

    Requires the ContainerMiddleware to be installed.

    Args:
        identifier: Class or string identifier to resolve.

    Returns:
        A callable that resolves from ``request.state.di_container``.

    Example:
        >>> app.add_middleware(ContainerMiddleware, container=container)
        >>>
        >>> get_settings = create_request_dependency("settings")
        >>>
        >>> @app.get("/settings")
        >>> async def show_settings(settings: dict = Depends(get_settings)):
        ...     return settings
    """

    def request_dependency(request: Request) -> Any:
        """Resolve from the request's container."""
        if not hasattr(request.state, "di_container"):
            raise RuntimeError("Request does not have a DI container. Did you forget to add ContainerMiddleware?")
        container: IContainer = request.state.di_container
        return container.get(identifier)

    return request_dependency


class ContainerMiddleware(BaseHTTPMiddleware):
    """Middleware that attaches a container to every request.

    The container is accessible via ``request.state.di_container`` while the
    request is handled.

    Attributes:
        container: The container exposed to endpoints.

    Example:
        >>> app = FastAPI()
        >>> app.add_middleware(ContainerMiddleware, container=container)
        >>>
        >>> @app.get("/")
        >>> async def root(request: Request):
        ...     service = request.state.di_container.get(GreetingService)
        ...     return {"message": service.greet()}
    """

    def __init__(self, app: FastAPI, container: IContainer):
        """Initialize the middleware with a container.

        Args:
            app: The FastAPI/Starlette application.
            container: The container to attach to requests.
        """
        super().__init__(app)
        self.container = container

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Attach the container to the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        request.state.di_container = self.container
        return await call_next(request)
