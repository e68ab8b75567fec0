"""Unified error codes and custom exceptions.

Base kinds (HTTP status):
  ValidationError 400, AuthorizationError 403, NotFoundError 404,
  ConflictError 409, PaymentRequiredError 402, UpstreamError 502.

Error code ranges:
  1xxx: Identity/Auth
  2xxx: Wallet
  3xxx: Catalog
  4xxx: Order/Rating
  5xxx: Cart/Checkout
  6xxx: Transaction
  7xxx: Social/Subscription
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- Base kinds ---

class ValidationError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 400)


class AuthorizationError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 403)


class NotFoundError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 404)


class ConflictError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 409)


class PaymentRequiredError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 402)


class UpstreamError(AppError):
    """Storage / mail / pub-sub provider failure."""

    def __init__(self, provider: str, detail: str = "unavailable") -> None:
        super().__init__(9003, f"Upstream provider {provider} failed: {detail}", 502)


# --- 1xxx: Identity/Auth ---

class EmailExistsError(ConflictError):
    def __init__(self, kind: str) -> None:
        super().__init__(1001, f"A {kind} with this email already exists")


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid email or password", 401)


class AccountDisabledError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled")


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class PrincipalNotFoundError(NotFoundError):
    def __init__(self, kind: str, principal_id: str) -> None:
        super().__init__(1006, f"{kind} not found: {principal_id}")


class ForbiddenError(AuthorizationError):
    def __init__(self, detail: str = "Not authorized for this action") -> None:
        super().__init__(1007, detail)


class UnderageError(ValidationError):
    def __init__(self, min_age: int) -> None:
        super().__init__(1008, f"Must be at least {min_age} years old")


class InvalidOtpError(ValidationError):
    def __init__(self) -> None:
        super().__init__(1009, "Invalid or expired reset code")


class IncorrectPasswordError(ValidationError):
    def __init__(self) -> None:
        super().__init__(1010, "Current password is incorrect")


class AccountInUseError(ConflictError):
    def __init__(self, detail: str) -> None:
        super().__init__(1011, f"Account cannot be deleted: {detail}")


# --- 2xxx: Wallet ---

class InvalidAmountError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(2001, detail)


class WalletNotFoundError(NotFoundError):
    def __init__(self, ref: str) -> None:
        super().__init__(2002, f"Wallet not found: {ref}")


class PlatformWalletMissingError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(2003, "Platform wallet not found")


# --- 3xxx: Catalog ---

class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: str) -> None:
        super().__init__(3001, f"Category not found: {category_id}")


class SubcategoryNotFoundError(NotFoundError):
    def __init__(self, subcategory_id: str) -> None:
        super().__init__(3002, f"Subcategory not found: {subcategory_id}")


class ServiceNotFoundError(NotFoundError):
    def __init__(self, service_id: str) -> None:
        super().__init__(3003, f"Service not found: {service_id}")


class AddOnNotFoundError(NotFoundError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Add-on not found: {detail}")


class SubcategoryMismatchError(ValidationError):
    def __init__(self, subcategory_id: str, category_id: str) -> None:
        super().__init__(
            3005, f"Subcategory {subcategory_id} does not belong to category {category_id}"
        )


class CatalogInUseError(ConflictError):
    def __init__(self, detail: str) -> None:
        super().__init__(3006, f"Still referenced: {detail}")


class NotServiceOwnerError(AuthorizationError):
    def __init__(self, service_id: str) -> None:
        super().__init__(3007, f"Not the owner of service {service_id}")


class CatalogNameExistsError(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__(3008, f"Name already exists: {name}")


# --- 4xxx: Order/Rating ---

class FreelancerBusyError(ConflictError):
    def __init__(self) -> None:
        super().__init__(
            4001,
            "This freelancer is currently working on another order. "
            "Please try again later or choose another freelancer.",
        )


class InvalidAddOnSelectionError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Invalid add-on selection: {detail}")


class NotOrderPartyError(AuthorizationError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4003, f"Not authorized for order {order_id}")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}")


class OrderNotPendingError(ValidationError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(4006, f"Order {order_id} is {status}; only PENDING orders can be changed")


class InvalidOrderTransitionError(ValidationError):
    def __init__(self, order_id: str, status: str, target: str) -> None:
        super().__init__(4007, f"Order {order_id} cannot move from {status} to {target}")


class OrderNotRateableError(ValidationError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4008, f"Order {order_id} can't be rated unless it's completed")


class DuplicateRatingError(ConflictError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4009, f"Rating already exists for order {order_id}")


class RatingNotFoundError(NotFoundError):
    def __init__(self, rating_id: str) -> None:
        super().__init__(4010, f"Rating not found: {rating_id}")


# --- 5xxx: Cart/Checkout ---

class CartNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(5001, "Cart is empty")


class CartHistoryEmptyError(NotFoundError):
    def __init__(self) -> None:
        super().__init__(5002, "No cart history found")


class EmptyCartError(ValidationError):
    def __init__(self) -> None:
        super().__init__(5003, "Your cart is empty")


class NoFailedTransactionsError(ValidationError):
    def __init__(self) -> None:
        super().__init__(5004, "No failed transactions to retry")


class PaymentFailedError(PaymentRequiredError):
    def __init__(self) -> None:
        super().__init__(5005, "Payment failed, please try again")


# --- 6xxx: Transaction ---

class TransactionNotFoundError(NotFoundError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(6001, f"Transaction not found: {transaction_id}")


# --- 7xxx: Social/Subscription ---

class PostNotFoundError(NotFoundError):
    def __init__(self, post_id: str) -> None:
        super().__init__(7001, f"Post not found: {post_id}")


class CommentNotFoundError(NotFoundError):
    def __init__(self, comment_id: str) -> None:
        super().__init__(7002, f"Comment not found: {comment_id}")


class NotAuthorError(AuthorizationError):
    def __init__(self, what: str) -> None:
        super().__init__(7003, f"You are not the author of this {what}")


class SubscriptionPlanNotFoundError(NotFoundError):
    def __init__(self, plan_id: str) -> None:
        super().__init__(7004, f"Subscription plan not found: {plan_id}")


class PlanExistsError(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__(7005, f"Subscription plan already exists: {name}")


class ChatRoomNotFoundError(NotFoundError):
    def __init__(self, room_id: str) -> None:
        super().__init__(7006, f"Chat room not found: {room_id}")


class NotChatPartyError(AuthorizationError):
    def __init__(self, room_id: str) -> None:
        super().__init__(7007, f"Not a participant of chat {room_id}")


class InvalidChatPairError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(7008, f"Chat not allowed: {detail}")


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class RequestInvalidError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(9004, f"Invalid request: {detail}")
