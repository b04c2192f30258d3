from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class WishlistItem(db.Model):
    """
    Saved product for a signed-in user or an anonymous browser session.

    Exactly one of user_id / session_id is set (enforced on the write path).
    The unique constraints stop concurrent adds from storing duplicates;
    NULLs never collide, so user rows and session rows do not interfere.
    """
    __tablename__ = "wishlist"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),
        db.UniqueConstraint("session_id", "product_id", name="uq_wishlist_session_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    session_id = db.Column(db.String(128), nullable=True, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "product_id": self.product_id,
            "created_at": to_utc_z(self.created_at),
        }
