# =============================================================================
# Catalog API Routes
# =============================================================================
#
# Endpoints:
#   GET  /api/v1/products    - List products (public)
#   POST /api/v1/products    - Create product (admin, multipart with image)
#   GET  /api/v1/categories  - List categories (public)
#   POST /api/v1/category    - Create category (admin)
#
# =============================================================================

from fastapi import APIRouter, Depends, Form

from storefront.api.deps import get_catalog
from storefront.auth.context import RequestContext
from storefront.auth.policies import require_admin, require_admin_upload
from storefront.catalog.service import CatalogService, CategoryRequest

router = APIRouter(prefix="/api/v1", tags=["catalog"])


@router.get("/products")
async def list_products(catalog: CatalogService = Depends(get_catalog)):
    products = await catalog.list_products()
    return {"message": "Product Found", "products": products}


@router.post("/products", status_code=201)
async def create_product(
    product_name: str | None = Form(None),
    description: str | None = Form(None),
    price: str | None = Form(None),
    category_id: str | None = Form(None),
    ctx: RequestContext = Depends(require_admin_upload),
    catalog: CatalogService = Depends(get_catalog),
):
    """
    Create a product.

    The `product_image` file field is consumed by upload admission; the
    stored image's URL arrives on the request context.
    """
    product = await catalog.create_product(
        product_name=product_name,
        description=description,
        price=price,
        category_id=category_id,
        image_url=ctx.upload_url,
    )
    return {"message": "Product created successfully", "product": product}


@router.get("/categories")
async def list_categories(catalog: CatalogService = Depends(get_catalog)):
    categories = await catalog.list_categories()
    return {"message": "Categories Found", "categories": categories}


@router.post("/category", status_code=201)
async def create_category(
    data: CategoryRequest,
    ctx: RequestContext = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog),
):
    category = await catalog.create_category(data)
    return {"message": "Category created successfully", "category": category}
