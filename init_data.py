"""Seed a local database with sample storefront data.

Only meant for a local SQLite or Postgres copy; the hosted database owns
its schema and data.
"""
from datetime import datetime, timedelta

from app import create_app
from app.extensions import db
from app.models import (
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ReturnRequest,
    ReturnStatus,
    Review,
    ReviewStatus,
    ServiceablePincode,
)

app = create_app()

with app.app_context():
    db.create_all()

    # Create initial categories
    categories_data = [
        {"name": "Sarees", "slug": "sarees", "order": 1},
        {"name": "Kurtis", "slug": "kurtis", "order": 2},
        {"name": "Lehengas", "slug": "lehengas", "order": 3},
        {"name": "Dupattas", "slug": "dupattas", "order": 4},
        {"name": "Jewellery", "slug": "jewellery", "order": 5},
    ]

    categories_dict = {}
    for cat_data in categories_data:
        existing = Category.query.filter_by(slug=cat_data["slug"]).first()
        if not existing:
            category = Category(
                name=cat_data["name"],
                slug=cat_data["slug"],
                sort_order=cat_data["order"],
                is_active=True,
            )
            db.session.add(category)
            db.session.flush()
            categories_dict[cat_data["slug"]] = category
            print(f"Created category: {cat_data['name']}")
        else:
            categories_dict[cat_data["slug"]] = existing

    products_data = [
        {
            "name": "Banarasi Silk Saree",
            "slug": "banarasi-silk-saree",
            "price": 4999,
            "sale_price": 4499,
            "stock": 12,
            "sizes": ["Free Size"],
            "category": "sarees",
        },
        {
            "name": "Cotton Handblock Kurti",
            "slug": "cotton-handblock-kurti",
            "price": 1299,
            "stock": 40,
            "sizes": ["S", "M", "L", "XL"],
            "category": "kurtis",
        },
        {
            "name": "Bridal Lehenga Set",
            "slug": "bridal-lehenga-set",
            "price": 18999,
            "stock": 3,
            "sizes": ["M", "L"],
            "category": "lehengas",
        },
        {
            "name": "Chanderi Dupatta",
            "slug": "chanderi-dupatta",
            "price": 899,
            "stock": 25,
            "sizes": [],
            "category": "dupattas",
        },
        {
            "name": "Kundan Earrings",
            "slug": "kundan-earrings",
            "price": 1499,
            "stock": 18,
            "sizes": [],
            "category": "jewellery",
        },
    ]

    products = []
    for product_data in products_data:
        product = Product.query.filter_by(slug=product_data["slug"]).first()
        if not product:
            product = Product(
                name=product_data["name"],
                slug=product_data["slug"],
                price=product_data["price"],
                sale_price=product_data.get("sale_price"),
                stock=product_data["stock"],
                sizes=product_data["sizes"],
                images=[],
                category_id=categories_dict[product_data["category"]].id,
                is_active=True,
            )
            db.session.add(product)
            db.session.flush()
            print(f"  Created product: {product_data['name']}")
        products.append(product)

    pincodes_data = [
        ("110001", "New Delhi", "Delhi"),
        ("400001", "Mumbai", "Maharashtra"),
        ("560001", "Bengaluru", "Karnataka"),
        ("700001", "Kolkata", "West Bengal"),
        ("600001", "Chennai", "Tamil Nadu"),
    ]
    for code, city, state in pincodes_data:
        if not ServiceablePincode.query.filter_by(pincode=code).first():
            db.session.add(
                ServiceablePincode(pincode=code, city=city, state=state))
            print(f"Created pincode: {code} ({city})")

    # Sample customer orders. No profile row is created: the first profile
    # must stay the console owner's, since the first sign-in becomes admin.
    customer_id = "00000000-0000-0000-0000-000000000001"
    customer_name = "Sample Customer"
    if not Order.query.filter_by(user_id=customer_id).first():
        now = datetime.utcnow()
        orders_data = [
            ("ORD1001", OrderStatus.PENDING, [products[0]]),
            ("ORD1002", OrderStatus.SHIPPED, [products[1], products[3]]),
            ("ORD1003", OrderStatus.DELIVERED, [products[4]]),
        ]
        for days_ago, (code, status, items) in enumerate(orders_data):
            order = Order(
                order_code=code,
                user_id=customer_id,
                name=customer_name,
                phone="9876543210",
                address="12 MG Road, Bengaluru 560001",
                amount=sum(p.sale_price or p.price for p in items),
                status=status,
                payment_method="cod",
                created_at=now - timedelta(days=days_ago),
            )
            for p in items:
                order.items.append(OrderItem(
                    product_id=p.id,
                    quantity=1,
                    price=p.sale_price or p.price,
                    size=(p.sizes or [None])[0],
                ))
            db.session.add(order)
            db.session.flush()
            print(f"  Created order: {code} ({status.value})")

            if status == OrderStatus.DELIVERED:
                db.session.add(ReturnRequest(
                    order_id=order.id,
                    order_item_id=order.items[0].id,
                    user_id=customer_id,
                    reason_type="damaged",
                    reason="Stone missing from one earring",
                    status=ReturnStatus.REQUESTED,
                ))
                print(f"  Created return for order {code}")

        db.session.add(Review(
            product_id=products[1].id,
            user_id=customer_id,
            rating=5,
            comment="Lovely print and fits well.",
            status=ReviewStatus.PENDING,
        ))
        db.session.add(Review(
            product_id=products[4].id,
            user_id=customer_id,
            rating=2,
            comment="Arrived damaged.",
            status=ReviewStatus.PENDING,
        ))
        print("  Created reviews")

    db.session.commit()
    print("Data initialization completed!")
