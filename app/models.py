from app.extensions import db
from flask_login import UserMixin
from datetime import datetime
from sqlalchemy import CheckConstraint
import enum
import uuid


def _uuid():
    return str(uuid.uuid4())


class OrderStatus(enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    SHIPPED = 'shipped'
    OUT_FOR_DELIVERY = 'out_for_delivery'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class ReturnStatus(enum.Enum):
    REQUESTED = 'requested'
    RETURN_APPROVED = 'return_approved'
    RETURN_REJECTED = 'return_rejected'
    PICKUP_SCHEDULED = 'pickup_scheduled'
    PICKED_UP = 'picked_up'
    QC_PASSED = 'qc_passed'
    QC_FAILED = 'qc_failed'
    REFUND_INITIATED = 'refund_initiated'
    COMPLETED = 'completed'


class ReviewStatus(enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


# Statuses are stored as their plain string values in the hosted tables.
def _enum_column(enum_class, **kwargs):
    return db.Enum(
        enum_class,
        values_callable=lambda e: [m.value for m in e],
        native_enum=False,
        validate_strings=True,
        length=32,
        **kwargs)


class Profile(UserMixin, db.Model):
    __tablename__ = 'profiles'

    # Same id as the identity provider's user.
    id = db.Column(db.String(36), primary_key=True)
    email = db.Column(db.String(255), nullable=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)
    avatar_url = db.Column(db.Text, nullable=True)
    phone_number = db.Column(db.String(20), nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<Profile {self.email}>'


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    # "order" is the hosted column name.
    sort_order = db.Column('order', db.Integer, default=0, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    # Linked products make the delete fail in the database.
    products = db.relationship('Product', back_populates='category',
                               lazy='dynamic', passive_deletes='all')

    def __repr__(self):
        return f'<Category {self.name}>'


class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False, index=True)
    slug = db.Column(db.String(200), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    sale_price = db.Column(db.Numeric(10, 2), nullable=True)
    # No ON DELETE: deleting a referenced category must fail.
    category_id = db.Column(
        db.String(36),
        db.ForeignKey('categories.id'),
        nullable=False,
        index=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    sku = db.Column(db.String(100), nullable=True)
    thumbnail_url = db.Column(db.Text, nullable=True)
    images = db.Column(db.JSON, nullable=False, default=list)
    sizes = db.Column(db.JSON, nullable=False, default=list)
    meta_title = db.Column(db.String(255), nullable=True)
    meta_description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_featured = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    category = db.relationship('Category', back_populates='products')

    __table_args__ = (
        CheckConstraint('price >= 0', name='check_product_price'),
        CheckConstraint('stock >= 0', name='check_product_stock'),
    )

    def __repr__(self):
        return f'<Product {self.name}>'


class Banner(db.Model):
    __tablename__ = 'hero_banners'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    title = db.Column(db.String(200), nullable=False)
    subtitle = db.Column(db.String(500), nullable=True)
    image_url = db.Column(db.Text, nullable=False)
    mobile_image_url = db.Column(db.Text, nullable=True)
    cta_text = db.Column(db.String(100), nullable=True)
    cta_link = db.Column(db.Text, nullable=True)
    position = db.Column(db.Integer, default=1, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    start_date = db.Column(db.DateTime, nullable=True)
    end_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<Banner {self.title}>'


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    order_code = db.Column(db.String(50), nullable=True, index=True)
    user_id = db.Column(db.String(36), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.Text, nullable=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    status = db.Column(
        _enum_column(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False)
    payment_method = db.Column(db.String(50), nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    items = db.relationship(
        'OrderItem',
        backref='order',
        lazy='select',
        cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Order {self.id} status={self.status}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    order_id = db.Column(
        db.String(36),
        db.ForeignKey('orders.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_id = db.Column(
        db.String(36),
        db.ForeignKey('products.id', ondelete='SET NULL'),
        nullable=True,
        index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    size = db.Column(db.String(20), nullable=True)

    product = db.relationship('Product')

    def __repr__(self):
        return f'<OrderItem {self.id} order={self.order_id}>'


class ReturnRequest(db.Model):
    __tablename__ = 'returns'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    order_id = db.Column(
        db.String(36),
        db.ForeignKey('orders.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    order_item_id = db.Column(
        db.String(36),
        db.ForeignKey('order_items.id', ondelete='CASCADE'),
        nullable=True)
    user_id = db.Column(db.String(36), nullable=True, index=True)
    reason_type = db.Column(db.String(50), nullable=True)
    reason = db.Column(db.Text, nullable=True)
    status = db.Column(
        _enum_column(ReturnStatus),
        default=ReturnStatus.REQUESTED,
        nullable=False)
    admin_remark = db.Column(db.Text, nullable=True)
    requested_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    order = db.relationship('Order')
    order_item = db.relationship('OrderItem')

    def __repr__(self):
        return f'<ReturnRequest {self.id} status={self.status}>'


class Review(db.Model):
    __tablename__ = 'product_reviews'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    product_id = db.Column(
        db.String(36),
        db.ForeignKey('products.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    status = db.Column(
        _enum_column(ReviewStatus),
        default=ReviewStatus.PENDING,
        nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        CheckConstraint(
            'rating >= 1 AND rating <= 5',
            name='check_rating_range'),
    )

    def __repr__(self):
        return f'<Review {self.id} for product {self.product_id}>'


class WishlistItem(db.Model):
    __tablename__ = 'wishlists'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey('profiles.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_id = db.Column(
        db.String(36),
        db.ForeignKey('products.id', ondelete='CASCADE'),
        nullable=False,
        index=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    profile = db.relationship('Profile')
    product = db.relationship('Product')

    def __repr__(self):
        return f'<WishlistItem user={self.user_id} product={self.product_id}>'


class ServiceablePincode(db.Model):
    __tablename__ = 'serviceable_pincodes'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    pincode = db.Column(db.String(6), unique=True, nullable=False)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<ServiceablePincode {self.pincode}>'
