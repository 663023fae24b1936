"""Pure domain layer: clock, value coercion, DTOs and the order status rule."""
