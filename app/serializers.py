from app.services.status_service import (
    ORDER_TRANSITIONS,
    RETURN_TRANSITIONS,
    available_statuses,
)


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return float(value) if value is not None else None


def profile_to_dict(p):
    return {
        'id': p.id,
        'email': p.email,
        'full_name': p.full_name,
        'avatar_url': p.avatar_url,
        'phone_number': p.phone_number,
        'is_admin': p.is_admin,
        'is_verified': p.is_verified,
        'created_at': _iso(p.created_at),
    }


def category_to_dict(c):
    return {
        'id': c.id,
        'name': c.name,
        'slug': c.slug,
        'description': c.description,
        'image_url': c.image_url,
        'is_active': c.is_active,
        'order': c.sort_order,
        'created_at': _iso(c.created_at),
    }


def product_to_dict(p):
    return {
        'id': p.id,
        'name': p.name,
        'slug': p.slug,
        'description': p.description,
        'price': _money(p.price),
        'sale_price': _money(p.sale_price),
        'category_id': p.category_id,
        'category_name': p.category.name if p.category else None,
        'stock': p.stock,
        'sku': p.sku,
        'thumbnail_url': p.thumbnail_url,
        'images': list(p.images or []),
        'sizes': list(p.sizes or []),
        'meta_title': p.meta_title,
        'meta_description': p.meta_description,
        'is_active': p.is_active,
        'is_featured': p.is_featured,
        'created_at': _iso(p.created_at),
    }


def banner_to_dict(b):
    return {
        'id': b.id,
        'title': b.title,
        'subtitle': b.subtitle,
        'image_url': b.image_url,
        'mobile_image_url': b.mobile_image_url,
        'cta_text': b.cta_text,
        'cta_link': b.cta_link,
        'position': b.position,
        'is_active': b.is_active,
        'start_date': _iso(b.start_date),
        'end_date': _iso(b.end_date),
        'created_at': _iso(b.created_at),
        'updated_at': _iso(b.updated_at),
    }


def order_item_to_dict(i):
    return {
        'id': i.id,
        'product_id': i.product_id,
        'product_name': i.product.name if i.product else None,
        'quantity': i.quantity,
        'price': _money(i.price),
        'size': i.size,
    }


def order_to_dict(o, with_items=True):
    data = {
        'id': o.id,
        'order_code': o.order_code,
        'user_id': o.user_id,
        'name': o.name,
        'phone': o.phone,
        'address': o.address,
        'amount': _money(o.amount),
        'status': o.status.value,
        'payment_method': o.payment_method,
        'created_at': _iso(o.created_at),
        'allowed_statuses': available_statuses(ORDER_TRANSITIONS, o.status),
    }
    if with_items:
        data['items'] = [order_item_to_dict(i) for i in o.items]
    return data


def return_to_dict(r):
    return {
        'id': r.id,
        'order_id': r.order_id,
        'order_item_id': r.order_item_id,
        'user_id': r.user_id,
        'reason_type': r.reason_type,
        'reason': r.reason,
        'status': r.status.value,
        'admin_remark': r.admin_remark,
        'requested_at': _iso(r.requested_at),
        'updated_at': _iso(r.updated_at),
        'allowed_statuses': available_statuses(RETURN_TRANSITIONS, r.status),
    }


def review_to_dict(r, product=None, profile=None):
    return {
        'id': r.id,
        'product_id': r.product_id,
        'user_id': r.user_id,
        'rating': r.rating,
        'comment': r.comment,
        'status': r.status.value,
        'created_at': _iso(r.created_at),
        'updated_at': _iso(r.updated_at),
        'product': None if not product else {
            'id': product.id,
            'name': product.name,
            'thumbnail_url': product.thumbnail_url,
        },
        'profile': None if not profile else {
            'id': profile.id,
            'full_name': profile.full_name,
            'email': profile.email,
        },
    }


def wishlist_item_to_dict(w):
    profile = w.profile
    product = w.product
    return {
        'id': w.id,
        'user_id': w.user_id,
        'product_id': w.product_id,
        'created_at': _iso(w.created_at),
        'profile': None if not profile else {
            'id': profile.id,
            'full_name': profile.full_name,
            'email': profile.email,
            'phone_number': profile.phone_number,
            'avatar_url': profile.avatar_url,
        },
        'product': None if not product else {
            'id': product.id,
            'name': product.name,
            'thumbnail_url': product.thumbnail_url,
            'price': _money(product.price),
        },
    }


def pincode_to_dict(p):
    return {
        'id': p.id,
        'pincode': p.pincode,
        'city': p.city,
        'state': p.state,
        'is_active': p.is_active,
        'created_at': _iso(p.created_at),
    }
