from fastapi import APIRouter, Depends, HTTPException, Request, status
from .errors import InvalidOrderData, PersistenceFailed
from .schemas import OrderCreate, OrderResponse, OrderResult
from .service import OrderService

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


@public_router.get("/health")
async def health_check():
    return {"service": "order", "status": "running"}


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(order: OrderCreate, service: OrderService = Depends(get_order_service)):
    try:
        order_number = await service.process(order.customer_id, order)
    except InvalidOrderData as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PersistenceFailed as e:
        raise HTTPException(
            status_code=500,
            detail={
                "error": f"Failed to save order file after {e.attempts} attempts",
                "attempts": e.attempts,
                "details": str(e.last_error),
            },
        )
    return OrderResponse(result=OrderResult(order_number=order_number))
