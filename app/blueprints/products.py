from flask import Blueprint, current_app, request, jsonify
from flask_login import current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from decimal import Decimal, InvalidOperation
from werkzeug.utils import secure_filename
from app.extensions import db
from app.models import Category, Product
from app.middleware import admin_required
from app.serializers import category_to_dict, product_to_dict
from app.services.audit_service import log_audit
from app.services.flask_session import current_access_token
from app.services.image_service import (
    ImageError,
    compress_image,
    random_jpeg_name,
)
from app.services.supabase_client import StorageError, storage_client
from app.utils import (
    FOREIGN_KEY_VIOLATION,
    UNIQUE_VIOLATION,
    constraint_code,
    matches,
    parse_bool,
    search_term,
    slugify,
    storage_error_response,
)
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('products', __name__)


def _commit(default_message):
    """Commit, translating a failure into an error response (or None)."""
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if constraint_code(e) == UNIQUE_VIOLATION:
            return jsonify({'error': 'Slug already exists'}), 409
        return storage_error_response(e, default_message)
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, default_message)
    return None


# ---------------------------------------------------------------- categories

@bp.route('/api/admin/categories', methods=['GET'])
@admin_required
def list_categories():
    term = search_term()
    categories = Category.query.order_by(Category.sort_order.asc()).all()
    return jsonify({
        'items': [
            category_to_dict(c) for c in categories
            if matches(term, c.name, c.slug)
        ]
    })


def _apply_category(category, data, creating):
    if creating or 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            return 'Name is required'
        category.name = name
    if creating or 'slug' in data:
        slug = (data.get('slug') or '').strip()
        if not slug and creating:
            slug = slugify(category.name)
        if not slug:
            return 'Slug is required'
        category.slug = slug
    if 'description' in data:
        category.description = (data.get('description') or '').strip() or None
    if 'image_url' in data:
        category.image_url = data.get('image_url') or None
    if 'is_active' in data:
        category.is_active = parse_bool(data.get('is_active'), True)
    if 'order' in data:
        try:
            category.sort_order = int(data.get('order') or 0)
        except (TypeError, ValueError):
            return 'Order must be a number'
    return None


@bp.route('/api/admin/categories', methods=['POST'])
@admin_required
def create_category():
    data = request.get_json(silent=True) or {}
    category = Category(is_active=True, sort_order=0)
    error = _apply_category(category, data, creating=True)
    if error:
        return jsonify({'error': error}), 400

    db.session.add(category)
    failure = _commit('Error saving category')
    if failure:
        return failure

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='CATEGORY_CREATE',
        target_type='CATEGORY',
        target_id=category.id,
        payload={'slug': category.slug}
    )
    return jsonify({'ok': True, 'category': category_to_dict(category)}), 201


@bp.route('/api/admin/categories/<category_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({'error': 'Category not found'}), 404

    data = request.get_json(silent=True) or {}
    error = _apply_category(category, data, creating=False)
    if error:
        db.session.rollback()
        return jsonify({'error': error}), 400

    failure = _commit('Error saving category')
    if failure:
        return failure
    return jsonify({'ok': True, 'category': category_to_dict(category)})


@bp.route('/api/admin/categories/<category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({'error': 'Category not found'}), 404

    db.session.delete(category)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if constraint_code(e) == FOREIGN_KEY_VIOLATION:
            return jsonify({
                'error': 'Cannot delete category: Products are linked to it.'
            }), 409
        return storage_error_response(e, 'Error deleting category')
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, 'Error deleting category')

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='CATEGORY_DELETE',
        target_type='CATEGORY',
        target_id=category_id,
    )
    return jsonify({'ok': True})


@bp.route('/api/admin/categories/<category_id>/products', methods=['GET'])
@admin_required
def category_products(category_id):
    if db.session.get(Category, category_id) is None:
        return jsonify({'error': 'Category not found'}), 404
    products = Product.query.filter_by(category_id=category_id).order_by(
        Product.created_at.desc()).all()
    return jsonify({'items': [product_to_dict(p) for p in products]})


# ------------------------------------------------------------------ products

def _decimal(value, field, allow_none=False):
    if value in (None, ''):
        if allow_none:
            return None
        raise ValueError(f'{field} is required')
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f'{field} must be a number')
    if number < 0:
        raise ValueError(f'{field} must be positive')
    return number


def _string_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    return [str(v) for v in value if str(v).strip()]


def _apply_product(product, data, creating):
    if creating or 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValueError('Name is required')
        product.name = name
    if creating or 'slug' in data:
        slug = (data.get('slug') or '').strip()
        if not slug and creating:
            slug = slugify(product.name)
        if not slug:
            raise ValueError('Slug is required')
        product.slug = slug
    if creating or 'price' in data:
        product.price = _decimal(data.get('price'), 'Price')
    if 'sale_price' in data:
        product.sale_price = _decimal(
            data.get('sale_price'), 'Sale price', allow_none=True)
    if creating or 'category_id' in data:
        category_id = (data.get('category_id') or '').strip()
        if not category_id:
            raise ValueError('Category is required')
        # Pending field changes must not be flushed by this lookup; commit
        # reports their constraint errors.
        with db.session.no_autoflush:
            category = db.session.get(Category, category_id)
        if category is None:
            raise ValueError('Category not found')
        product.category_id = category_id
    if creating or 'stock' in data:
        try:
            stock = int(data.get('stock') or 0)
        except (TypeError, ValueError):
            raise ValueError('Stock must be a number')
        if stock < 0:
            raise ValueError('Stock must be positive')
        product.stock = stock

    for field in ('description', 'sku', 'thumbnail_url', 'meta_title',
                  'meta_description'):
        if field in data:
            setattr(product, field, (data.get(field) or '').strip() or None)
    if 'images' in data:
        product.images = _string_list(data.get('images'))
    if 'sizes' in data:
        product.sizes = _string_list(data.get('sizes'))
    if 'is_active' in data:
        product.is_active = parse_bool(data.get('is_active'), True)
    if 'is_featured' in data:
        product.is_featured = parse_bool(data.get('is_featured'))


@bp.route('/api/admin/products', methods=['GET'])
@admin_required
def list_products():
    term = search_term()
    products = Product.query.order_by(Product.created_at.desc()).all()
    items = [
        product_to_dict(p) for p in products
        if matches(term, p.name, p.slug, p.sku)
    ]
    return jsonify({'items': items, 'total': len(items)})


@bp.route('/api/admin/products/<product_id>', methods=['GET'])
@admin_required
def get_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404
    return jsonify(product_to_dict(product))


@bp.route('/api/admin/products', methods=['POST'])
@admin_required
def create_product():
    data = request.get_json(silent=True) or {}
    product = Product(
        stock=0, images=[], sizes=[], is_active=True, is_featured=False)
    try:
        _apply_product(product, data, creating=True)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    db.session.add(product)
    failure = _commit('Error saving product')
    if failure:
        return failure

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='PRODUCT_CREATE',
        target_type='PRODUCT',
        target_id=product.id,
        payload={'slug': product.slug}
    )
    return jsonify({'ok': True, 'product': product_to_dict(product)}), 201


@bp.route('/api/admin/products/<product_id>', methods=['PUT', 'PATCH'])
@admin_required
def update_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        _apply_product(product, data, creating=False)
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    failure = _commit('Error saving product')
    if failure:
        return failure
    return jsonify({'ok': True, 'product': product_to_dict(product)})


@bp.route('/api/admin/products/<product_id>/toggle', methods=['POST'])
@admin_required
def toggle_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    product.is_active = not product.is_active
    failure = _commit('Error updating status')
    if failure:
        return failure
    return jsonify({'ok': True, 'is_active': product.is_active})


@bp.route('/api/admin/products/<product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    db.session.delete(product)
    failure = _commit('Error deleting product')
    if failure:
        return failure

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='PRODUCT_DELETE',
        target_type='PRODUCT',
        target_id=product_id,
    )
    return jsonify({'ok': True})


@bp.route('/api/admin/products/bulk-delete', methods=['POST'])
@admin_required
def bulk_delete_products():
    data = request.get_json(silent=True) or {}
    ids = data.get('ids')
    if not isinstance(ids, list) or not ids:
        return jsonify({'error': 'ids must be a non-empty array'}), 400

    try:
        deleted = Product.query.filter(Product.id.in_(ids)).delete(
            synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        return storage_error_response(e, 'Error deleting products')

    log_audit(
        actor_id=current_user.id,
        actor_email=current_user.email,
        action='PRODUCT_BULK_DELETE',
        target_type='PRODUCT',
        payload={'ids': ids, 'deleted': deleted}
    )
    return jsonify({'ok': True, 'deleted': deleted})


# ------------------------------------------------------------------- uploads

@bp.route('/api/admin/uploads/<bucket>', methods=['POST'])
@admin_required
def upload_image(bucket):
    if bucket not in current_app.config['STORAGE_BUCKETS']:
        return jsonify({'error': 'Unknown storage bucket'}), 400

    f = request.files.get('image')
    if not f:
        return jsonify({'error': 'No image uploaded'}), 400

    filename = secure_filename(f.filename or '')
    max_dimension = current_app.config['IMAGE_MAX_DIMENSION']
    try:
        data, size = compress_image(
            f.read(),
            max_width=max_dimension,
            max_height=max_dimension,
            quality=current_app.config['IMAGE_JPEG_QUALITY'],
        )
    except ImageError as e:
        return jsonify({'error': str(e)}), 400

    path = random_jpeg_name()
    try:
        url = storage_client().upload(
            bucket, path, data, 'image/jpeg',
            access_token=current_access_token())
    except StorageError as e:
        logger.error("Error uploading image %s: %s", filename, e)
        return jsonify({'error': str(e)}), 502

    return jsonify({
        'ok': True,
        'url': url,
        'path': path,
        'width': size[0],
        'height': size[1],
    }), 201
