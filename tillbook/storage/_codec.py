"""
Order document codec — Order ⇄ JSON-ready dict.

Writes the current camelCase layout. Reads it back, and also reads documents
written by the older POS backend:

    totalAmount              → bills.totalWithTax
    bills.total              → recomputed from items
    customerDetails{...}     → customer
    items[].price / .total   → unitPrice / lineTotal
    user                     → ownerUserId
    _id, orderDate, table    → orderId, createdAt, tableId
    "paid"                   → completed
    "Completed", "Pending"…  → lower-cased
    cash/card/online/upi/wallet → Cash/Online-BDO/Online-GCASH

Legacy documents carry no tender breakdown, so their bills are recomputed from
the items and tax; a paid legacy order is treated as paid in full. Legacy prices
are rounded to cents, and a null method or status reads as its default.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from kungfu import Result, Ok, Error

from tillbook._types import Money, ZERO, floor_zero, money
from tillbook.bills import (
    BillSummary,
    Category,
    DiscountInputs,
    DiscountRates,
    OrderLineItem,
    PaymentMethod,
    PaymentStatus,
    Pricing,
    TaxRule,
    Tender,
    apply_tender,
    compute_bills,
)
from tillbook.errors import BillingError, ValidationError
from tillbook.lifecycle import OrderStatus
from tillbook.orders._types import Customer, Order

type Document = dict[str, Any]

_LEGACY_METHODS: dict[str, PaymentMethod] = {
    "cash": PaymentMethod.CASH,
    "card": PaymentMethod.ONLINE_BDO,
    "online": PaymentMethod.ONLINE_GCASH,
    "upi": PaymentMethod.ONLINE_GCASH,
    "wallet": PaymentMethod.ONLINE_GCASH,
}

_LEGACY_PAYMENT_STATUS: dict[str, PaymentStatus] = {
    "paid": PaymentStatus.COMPLETED,
}


# ═══════════════════════════════════════════════════════════════════════════════
# Scalars
# ═══════════════════════════════════════════════════════════════════════════════


def _dec(value: Any) -> Decimal:
    # str() first so JSON floats keep their printed digits
    return Decimal(str(value))


def _money_out(value: Money) -> str:
    return str(money(value))


def _dt_out(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _dt_in(value: Any) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_payment_method(raw: str) -> PaymentMethod:
    try:
        return PaymentMethod(raw)
    except ValueError:
        legacy = _LEGACY_METHODS.get(raw.strip().lower())
        if legacy is None:
            raise
        return legacy


def parse_payment_status(raw: str) -> PaymentStatus:
    key = raw.strip().lower()
    return _LEGACY_PAYMENT_STATUS.get(key) or PaymentStatus(key)


def parse_order_status(raw: str) -> OrderStatus:
    return OrderStatus(raw.strip().lower())


# ═══════════════════════════════════════════════════════════════════════════════
# Encode
# ═══════════════════════════════════════════════════════════════════════════════


def _item_out(item: OrderLineItem) -> Document:
    return {
        "name": item.name,
        "quantity": item.quantity,
        "unitPrice": _money_out(item.unit_price),
        "lineTotal": _money_out(item.line_total),
        "isRedeemed": item.is_redeemed,
        "isPwdSeniorDiscounted": item.is_pwd_senior_discounted,
        "category": item.category.value,
    }


def _bills_out(bill: BillSummary) -> Document:
    return {
        "subtotal": _money_out(bill.subtotal),
        "tax": _money_out(bill.tax),
        "pwdSeniorDiscount": _money_out(bill.pwd_senior_discount),
        "employeeDiscount": _money_out(bill.employee_discount),
        "shareholderDiscount": _money_out(bill.shareholder_discount),
        "redemptionDiscount": _money_out(bill.redemption_discount),
        "redeemedValue": _money_out(bill.redeemed_value),
        "totalWithTax": _money_out(bill.total_with_tax),
        "netSales": _money_out(bill.net_sales),
        "cashAmount": _money_out(bill.cash_amount),
        "onlineAmount": _money_out(bill.online_amount),
        "onlineMethod": bill.online_method.value if bill.online_method else None,
        "amountPaid": _money_out(bill.amount_paid),
        "change": _money_out(bill.change),
        "remainingBalance": _money_out(bill.remaining_balance),
        "isPartialPayment": bill.is_partial_payment,
    }


def _pricing_out(pricing: Pricing) -> Document:
    d, t, r = pricing.discounts, pricing.tax, pricing.rates
    return {
        "discounts": {
            "pwdSenior": d.pwd_senior,
            "employee": d.employee,
            "shareholder": d.shareholder,
            "redemptionAmount": _money_out(d.redemption_amount),
        },
        "tax": {
            "amount": str(t.amount),
            "rate": str(t.rate) if t.rate is not None else None,
        },
        "rates": {
            "pwdSenior": str(r.pwd_senior),
            "employee": str(r.employee),
            "shareholder": str(r.shareholder),
        },
    }


def order_to_document(order: Order) -> Document:
    """Encode an order as a JSON-ready dict (money as strings)."""
    return {
        "orderNumber": order.order_number,
        "orderId": order.order_id,
        "items": [_item_out(i) for i in order.items],
        "bills": _bills_out(order.bills),
        "pricing": _pricing_out(order.pricing),
        "paymentMethod": order.payment_method.value,
        "paymentStatus": order.payment_status.value,
        "orderStatus": order.order_status.value,
        "ownerUserId": order.owner_user_id,
        "createdAt": _dt_out(order.created_at),
        "updatedAt": _dt_out(order.updated_at),
        "customer": {
            "name": order.customer.name,
            "phone": order.customer.phone,
            "guests": order.customer.guests,
        },
        "tableId": order.table_id,
        "notes": order.notes,
        "version": order.version,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# Decode
# ═══════════════════════════════════════════════════════════════════════════════


def _item_in(raw: Document) -> OrderLineItem:
    if "unitPrice" in raw:
        price = _dec(raw["unitPrice"])
    elif "price" in raw:
        price = money(_dec(raw["price"]))
    else:
        # only the line total survived
        price = money(_dec(raw["total"]) / int(raw["quantity"]))
    return OrderLineItem(
        name=str(raw["name"]),
        quantity=int(raw["quantity"]),
        unit_price=price,
        is_redeemed=bool(raw.get("isRedeemed", False)),
        is_pwd_senior_discounted=bool(raw.get("isPwdSeniorDiscounted", False)),
        category=Category(raw.get("category", Category.OTHER.value)),
    )


def _bills_in(raw: Document) -> BillSummary:
    online_method = raw.get("onlineMethod")
    return BillSummary(
        subtotal=money(_dec(raw["subtotal"])),
        tax=money(_dec(raw["tax"])),
        pwd_senior_discount=money(_dec(raw.get("pwdSeniorDiscount", 0))),
        employee_discount=money(_dec(raw.get("employeeDiscount", 0))),
        shareholder_discount=money(_dec(raw.get("shareholderDiscount", 0))),
        redemption_discount=money(_dec(raw.get("redemptionDiscount", 0))),
        redeemed_value=money(_dec(raw.get("redeemedValue", 0))),
        total_with_tax=money(_dec(raw["totalWithTax"])),
        net_sales=money(_dec(raw["netSales"])),
        cash_amount=money(_dec(raw.get("cashAmount", 0))),
        online_amount=money(_dec(raw.get("onlineAmount", 0))),
        online_method=parse_payment_method(online_method) if online_method else None,
        amount_paid=money(_dec(raw.get("amountPaid", 0))),
        change=money(_dec(raw.get("change", 0))),
        remaining_balance=money(_dec(raw.get("remainingBalance", 0))),
        is_partial_payment=bool(raw.get("isPartialPayment", False)),
    )


def _pricing_in(raw: Document | None) -> Pricing:
    if not raw:
        return Pricing()
    d = raw.get("discounts", {})
    t = raw.get("tax", {})
    r = raw.get("rates", {})
    defaults = DiscountRates()
    return Pricing(
        discounts=DiscountInputs(
            pwd_senior=bool(d.get("pwdSenior", False)),
            employee=bool(d.get("employee", False)),
            shareholder=bool(d.get("shareholder", False)),
            redemption_amount=_dec(d.get("redemptionAmount", 0)),
        ),
        tax=TaxRule(
            amount=_dec(t.get("amount", 0)),
            rate=_dec(t["rate"]) if t.get("rate") is not None else None,
        ),
        rates=DiscountRates(
            pwd_senior=_dec(r.get("pwdSenior", defaults.pwd_senior)),
            employee=_dec(r.get("employee", defaults.employee)),
            shareholder=_dec(r.get("shareholder", defaults.shareholder)),
        ),
    )


def _legacy_bills(
    items: tuple[OrderLineItem, ...],
    raw_bills: Document,
    method: PaymentMethod,
    status: PaymentStatus,
) -> tuple[BillSummary, Pricing, PaymentStatus]:
    if "tax" in raw_bills:
        tax = _dec(raw_bills["tax"])
    elif "totalWithTax" in raw_bills:
        # totalAmount-era documents: tax is whatever the total carried on top
        subtotal = sum((i.payable_total for i in items), ZERO)
        tax = floor_zero(_dec(raw_bills["totalWithTax"]) - subtotal)
    else:
        tax = ZERO
    pricing = Pricing(tax=TaxRule.flat(tax))
    match compute_bills(items, pricing.discounts, pricing.tax, pricing.rates):
        case Ok(bill):
            pass
        case Error(e):
            raise e
    tender = Tender()
    if status is PaymentStatus.COMPLETED:
        if method.is_online:
            tender = Tender(online=bill.total_with_tax, online_method=method)
        else:
            tender = Tender(cash=bill.total_with_tax)
    match apply_tender(bill, tender):
        case Ok(allocation):
            pass
        case Error(e):
            raise e
    if status in (PaymentStatus.FAILED, PaymentStatus.REFUNDED):
        return allocation.bill, pricing, status
    return allocation.bill, pricing, allocation.payment_status


def _decode(doc: Document) -> Order:
    items = tuple(_item_in(i) for i in doc.get("items") or [])
    method = parse_payment_method(doc.get("paymentMethod") or PaymentMethod.CASH.value)
    status = parse_payment_status(doc.get("paymentStatus") or PaymentStatus.PENDING.value)
    raw_bills = dict(doc.get("bills") or {})
    if "totalAmount" in doc and "totalWithTax" not in raw_bills:
        raw_bills["totalWithTax"] = doc["totalAmount"]

    if "netSales" in raw_bills:
        bills = _bills_in(raw_bills)
        pricing = _pricing_in(doc.get("pricing"))
    else:
        bills, pricing, status = _legacy_bills(items, raw_bills, method, status)

    customer_raw = doc.get("customer") or doc.get("customerDetails") or {}
    default_customer = Customer()
    created_at = _dt_in(doc.get("createdAt") or doc["orderDate"])
    table = doc.get("tableId", doc.get("table"))

    return Order(
        order_number=str(doc["orderNumber"]),
        order_id=str(doc.get("orderId") or doc["_id"]),
        items=items,
        bills=bills,
        pricing=pricing,
        payment_method=method,
        payment_status=status,
        order_status=parse_order_status(doc.get("orderStatus") or OrderStatus.PENDING.value),
        owner_user_id=str(doc.get("ownerUserId") or doc["user"]),
        created_at=created_at,
        updated_at=_dt_in(doc["updatedAt"]) if doc.get("updatedAt") else created_at,
        customer=Customer(
            name=str(customer_raw.get("name", default_customer.name)),
            phone=str(customer_raw.get("phone", default_customer.phone)),
            guests=int(customer_raw.get("guests", default_customer.guests)),
        ),
        table_id=str(table) if table is not None else None,
        notes=str(doc.get("notes", "")),
        version=int(doc.get("version", 1)),
    )


def order_from_document(doc: Document) -> Result[Order, BillingError]:
    """
    Decode a stored order, current or legacy layout.

    Example:
        match order_from_document(json.loads(row.document)):
            case Ok(order): ...
            case Error(e): ...  # ValidationError naming the problem
    """
    try:
        return Ok(_decode(doc))
    except BillingError as e:
        return Error(e)
    except KeyError as e:
        return Error(ValidationError("order document is missing a field", field=e.args[0]))
    except (ValueError, TypeError, AttributeError, InvalidOperation, ZeroDivisionError) as e:
        return Error(ValidationError(f"malformed order document: {e}"))


__all__ = (
    "Document",
    "order_to_document",
    "order_from_document",
    "parse_payment_method",
    "parse_payment_status",
    "parse_order_status",
)
