from fastapi import Depends, Request

from .container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_settings(container: ApplicationContainer = Depends(get_container)):
    return container.settings


def get_credential_service(container: ApplicationContainer = Depends(get_container)):
    return container.credential_service


def get_shop_service(container: ApplicationContainer = Depends(get_container)):
    return container.shop_service


def get_product_service(container: ApplicationContainer = Depends(get_container)):
    return container.product_service
