"""
Customer API Endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from api.dependencies import get_customer_service
from api.errors import to_http_exception, unexpected_error
from api.models import CustomerCreateRequest, CustomerResponse, CustomerUpdateRequest
from domain.errors import DealershipError
from services.customer_service import CustomerService

router = APIRouter()


@router.get(
    "/customers",
    response_model=List[CustomerResponse],
    summary="List Customers",
    description="List customers, optionally filtered by a keyword matched against name or phone."
)
def list_customers(
    keyword: Optional[str] = Query(None, description="Case-insensitive substring of name or phone"),
    service: CustomerService = Depends(get_customer_service),
):
    try:
        customers = service.search_customers(keyword)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("list customers")
    return [CustomerResponse.from_domain(c) for c in customers]


@router.get(
    "/customers/unpurchased",
    response_model=List[CustomerResponse],
    summary="List Unpurchased Customers",
    description="Buyers without a completed purchase, newest first, for the sale form's customer picker."
)
def list_unpurchased_customers(
    keyword: Optional[str] = Query(None, description="Case-insensitive substring of name or phone"),
    service: CustomerService = Depends(get_customer_service),
):
    """
    Without a keyword only the 10 most recently added buyers are returned.
    Customers with an open reservation are still listed.
    """
    try:
        customers = service.list_unpurchased_customers(keyword)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("list unpurchased customers")
    return [CustomerResponse.from_domain(c) for c in customers]


@router.post("/customers", response_model=CustomerResponse, status_code=201, summary="Create Customer")
def create_customer(request: CustomerCreateRequest, service: CustomerService = Depends(get_customer_service)):
    """
    **Errors:**
    - 400: name or phone missing
    - 409: phone already registered
    """
    try:
        customer = service.create_customer(**request.model_dump())
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("create customer")
    return CustomerResponse.from_domain(customer)


@router.get("/customers/{customer_id}", response_model=CustomerResponse, summary="Get Customer")
def get_customer(customer_id: str, service: CustomerService = Depends(get_customer_service)):
    try:
        customer = service.get_customer(customer_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("get customer")
    return CustomerResponse.from_domain(customer)


@router.put("/customers/{customer_id}", response_model=CustomerResponse, summary="Update Customer")
def update_customer(
    customer_id: str,
    request: CustomerUpdateRequest,
    service: CustomerService = Depends(get_customer_service),
):
    try:
        customer = service.update_customer(customer_id, request.model_dump(exclude_unset=True))
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("update customer")
    return CustomerResponse.from_domain(customer)


@router.delete(
    "/customers/{customer_id}",
    status_code=204,
    response_class=Response,
    summary="Delete Customer",
    description="Delete a customer with no sale records and no open reservation."
)
def delete_customer(customer_id: str, service: CustomerService = Depends(get_customer_service)):
    try:
        service.delete_customer(customer_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("delete customer")
    return Response(status_code=204)
