from functools import partial

from pydantic import BaseModel, Field

from server.core.RequestContext import RequestContext
from server.core.ToolExecutor import Tool
from server.tools.AuthTools import EMAIL_PATTERN
from shared.clients.store.StoreClientInterface import MAX_ORDER_QUERY_LIMIT, StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.order import Order


class CreateOrderInput(BaseModel):
    customer_name: str = Field(alias="customerName", min_length=1, description="The name of the customer placing the order")
    customer_email: str = Field(alias="customerEmail", pattern=EMAIL_PATTERN, description="The customer's email address")
    product_name: str = Field(alias="productName", min_length=1, description="The name of the product being ordered")
    quantity: int = Field(gt=0, description="The quantity of products ordered")
    unit_price: float = Field(alias="unitPrice", gt=0, description="The price per unit of the product")


class GetOrdersInput(BaseModel):
    limit: int = Field(default=10, ge=1, le=MAX_ORDER_QUERY_LIMIT, description="Number of orders to retrieve (max 50, default 10)")


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "customerName": order.customer_name,
        "customerEmail": order.customer_email,
        "productName": order.product_name,
        "quantity": order.quantity,
        "unitPrice": f"{order.unit_price:.2f}",
        "totalAmount": f"{order.total_amount:.2f}",
        "status": order.status,
        "orderDate": order.order_date.isoformat(),
    }


class OrderTools:
    DESCRIPTIONS: dict[str, str] = {
        "createOrder": "Create a new sales order in the system. Use this when the user wants to place an order or record a sale.",
        "getOrders": "Retrieve recent sales orders. Use this when the user wants to view, list, or check their orders.",
    }

    def __init__(self, helper_config: HelperConfig, store: StoreClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._store = store

    def get_tools(self, context: RequestContext) -> list[Tool]:
        return [
            Tool(name="createOrder", description=self.DESCRIPTIONS["createOrder"], input_model=CreateOrderInput, handler=partial(self.create_order, context)),
            Tool(name="getOrders", description=self.DESCRIPTIONS["getOrders"], input_model=GetOrdersInput, handler=partial(self.get_orders, context)),
        ]

    async def create_order(self, context: RequestContext, params: CreateOrderInput) -> dict:
        order = Order.create(
            user_id=context.user_id,
            customer_name=params.customer_name,
            customer_email=params.customer_email,
            product_name=params.product_name,
            quantity=params.quantity,
            unit_price=params.unit_price,
        )
        await self._store.insert_order(order)
        self.logging.info("Created order %s (total %s) for user '%s'.", order.order_number, order.total_amount, context.user_id)
        return {"success": True, "message": "Sales order created successfully!", "order": order_to_dict(order)}

    async def get_orders(self, context: RequestContext, params: GetOrdersInput) -> dict:
        orders = await self._store.query_orders(context.user_id, limit=params.limit)
        if not orders:
            return {"success": True, "message": "No orders found.", "orders": []}
        return {
            "success": True,
            "message": f"Found {len(orders)} order(s).",
            "orders": [order_to_dict(order) for order in orders],
        }
