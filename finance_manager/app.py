"""
Secure Finance Manager - Main FastAPI Application

PURPOSE: FastAPI routes, endpoints, and application setup
SCOPE: HTTP API layer and request/response handling
DEPENDENCIES: FastAPI, all backend modules
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Tuple, Union

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import AppConfig, config
from .crypto import FieldCipher
from .database import DatabaseManager
from .exceptions import DatabaseError, DecryptionError, DuplicateRecordError
from .identity import UserCache
from .managers import (
    ColourManager, UserManager, CategoryManager, SubcategoryManager,
    LabelManager, EntryManager, EntryLabelManager
)
from .schemas import UserPayload, CategoryPayload, SubcategoryPayload, LabelPayload, EntryPayload
from .security import get_current_username
from .validators import (
    validate_ids, validate_batch, validate_named_data, validate_named_patch,
    validate_entry_data, validate_entry_patch, validate_user_data, validate_user_patch,
    validate_matching_counts, parse_id_list, sanitize_payload
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# REQUEST HELPERS
# ============================================================================

def colour_manager(request: Request) -> ColourManager:
    return request.app.state.colour_manager


def user_manager(request: Request) -> UserManager:
    return request.app.state.user_manager


def category_manager(request: Request) -> CategoryManager:
    return request.app.state.category_manager


def subcategory_manager(request: Request) -> SubcategoryManager:
    return request.app.state.subcategory_manager


def label_manager(request: Request) -> LabelManager:
    return request.app.state.label_manager


def entry_manager(request: Request) -> EntryManager:
    return request.app.state.entry_manager


def entry_label_manager(request: Request) -> EntryLabelManager:
    return request.app.state.entry_label_manager


def check_valid(result: Tuple[bool, List[str]]) -> None:
    """Turn a failed validation result into a 400 response."""
    is_valid, validation_errors = result
    if not is_valid:
        raise HTTPException(status_code=400, detail={"errors": validation_errors})


def not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=404, detail=detail)


def as_batch(payload: Union[BaseModel, List[BaseModel]]) -> Tuple[List[Dict[str, Any]], bool]:
    """Normalize a single payload or a list of payloads to sanitized dicts."""
    is_batch = isinstance(payload, list)
    items = payload if is_batch else [payload]
    return [sanitize_payload(item.model_dump()) for item in items], is_batch


def path_ids(raw: str, name: str) -> List[int]:
    """Parse a path segment holding one ID or a comma-separated list such as "3,7"."""
    ids, errors = parse_id_list(raw, name)
    check_valid((ids is not None, errors))
    return ids


def pair_ids(parent_ids: List[int], children: List[Any],
             parent_name: str, child_name: str) -> List[Tuple[int, Any]]:
    """Pair parent IDs with children in order; a single parent ID applies to every child."""
    if len(parent_ids) == 1:
        parent_ids = parent_ids * len(children)
    check_valid(validate_matching_counts(**{parent_name: len(parent_ids), child_name: len(children)}))
    return list(zip(parent_ids, children))


def deleted(kind: str, ids: List[int]) -> Dict[str, Any]:
    if len(ids) == 1:
        return {"success": True, "detail": f"{kind} with ID {ids[0]} has been deleted."}
    return {"success": True, "detail": f"{kind} IDs {', '.join(map(str, ids))} have been deleted."}


async def check_colour(colours: ColourManager, colour_id: int) -> None:
    """Reject references to colours that do not exist; 0 and None mean no change."""
    if colour_id and not await colours.colour_exists(colour_id):
        raise HTTPException(
            status_code=400,
            detail={"errors": [f"colour with id {colour_id} does not exist"]}
        )


# ============================================================================
# COLOUR ENDPOINTS
# ============================================================================

@router.get("/colours")
async def get_colours(colours: ColourManager = Depends(colour_manager)):
    """Get the global colour palette."""
    return await colours.get_all_colours()


@router.get("/colours/{colour_id}")
async def get_colour(colour_id: int, colours: ColourManager = Depends(colour_manager)):
    """Get a single colour."""
    check_valid(validate_ids(colour_id=colour_id))
    colour = await colours.get_colour(colour_id)
    if not colour:
        raise not_found(f"Colour with ID {colour_id} does not exist")
    return colour


# ============================================================================
# USER ENDPOINTS
# ============================================================================

@router.post("/users", status_code=201)
async def add_users(
    payload: Union[List[UserPayload], UserPayload],
    users: UserManager = Depends(user_manager)
):
    """Register one user or a list of users. No authentication required."""
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    for item in items:
        check_valid(validate_user_data(item))

    created = []
    for item in items:
        try:
            created.append(await users.add_user(item))
        except DuplicateRecordError as e:
            raise HTTPException(status_code=400, detail={"errors": [str(e)]})

    return created if is_batch else created[0]


@router.get("/user")
async def get_user(
    username: str = Depends(get_current_username),
    users: UserManager = Depends(user_manager)
):
    """Get the authenticated user."""
    user = await users.get_user(username)
    if not user:
        raise not_found("User not found")
    return user


@router.patch("/users")
async def update_user(
    payload: UserPayload,
    username: str = Depends(get_current_username),
    users: UserManager = Depends(user_manager)
):
    """Update the authenticated user; null fields keep their value."""
    user_data = sanitize_payload(payload.model_dump())
    check_valid(validate_user_patch(user_data))

    try:
        user = await users.update_user(username, user_data)
    except DuplicateRecordError as e:
        raise HTTPException(status_code=400, detail={"errors": [str(e)]})

    if not user:
        raise not_found("User not found")
    return user


@router.delete("/users")
async def delete_user(
    username: str = Depends(get_current_username),
    users: UserManager = Depends(user_manager)
):
    """Delete the authenticated user and everything they own."""
    if not await users.delete_user(username):
        raise not_found("User not found")
    return {"success": True, "detail": f"User {username} has been deleted."}


# ============================================================================
# CATEGORY ENDPOINTS
# ============================================================================

@router.get("/categories")
async def get_categories(
    username: str = Depends(get_current_username),
    categories: CategoryManager = Depends(category_manager)
):
    """Get all categories of the authenticated user."""
    return await categories.get_all_categories(username)


@router.get("/categories/{category_id}")
async def get_category(
    category_id: int,
    username: str = Depends(get_current_username),
    categories: CategoryManager = Depends(category_manager)
):
    """Get a specific category."""
    check_valid(validate_ids(category_id=category_id))
    category = await categories.get_category(username, category_id)
    if not category:
        raise not_found(f"Category with ID {category_id} not found")
    return category


@router.get("/categories/{category_id}/sum")
async def get_category_sum(
    category_id: int,
    username: str = Depends(get_current_username),
    categories: CategoryManager = Depends(category_manager)
):
    """Get the sum of all entry amounts below a category."""
    check_valid(validate_ids(category_id=category_id))
    total = await categories.get_category_sum(username, category_id)
    if total is None:
        raise not_found(f"Category with ID {category_id} not found")
    return {"category_id": category_id, "sum": total}


@router.post("/categories", status_code=201)
async def add_categories(
    payload: Union[List[CategoryPayload], CategoryPayload],
    username: str = Depends(get_current_username),
    categories: CategoryManager = Depends(category_manager),
    colours: ColourManager = Depends(colour_manager)
):
    """Create one category or a list of categories."""
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    for item in items:
        check_valid(validate_named_data(item, "category"))
        await check_colour(colours, item['colour_id'])

    created = []
    for item in items:
        category = await categories.add_category(username, item)
        if not category:
            raise not_found("User not found")
        created.append(category)

    return created if is_batch else created[0]


@router.patch("/categories/{category_ids}")
async def update_categories(
    category_ids: str,
    payload: Union[List[CategoryPayload], CategoryPayload],
    username: str = Depends(get_current_username),
    categories: CategoryManager = Depends(category_manager),
    colours: ColourManager = Depends(colour_manager)
):
    """Update one category, or several ("1,2,3") paired in order with a list body.

    Null fields keep their value.
    """
    ids = path_ids(category_ids, "category_id")
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    check_valid(validate_matching_counts(category_ids=len(ids), payloads=len(items)))
    for item in items:
        check_valid(validate_named_patch(item, "category"))
        await check_colour(colours, item['colour_id'])

    updated = []
    for category_id, item in zip(ids, items):
        category = await categories.update_category(username, category_id, item)
        if not category:
            raise not_found(f"Category with ID {category_id} not found")
        updated.append(category)

    return updated if is_batch else updated[0]


@router.delete("/categories/{category_ids}")
async def delete_categories(
    category_ids: str,
    username: str = Depends(get_current_username),
    categories: CategoryManager = Depends(category_manager)
):
    """Delete one or more categories with their subcategories and entries."""
    ids = path_ids(category_ids, "category_id")
    for category_id in ids:
        if not await categories.delete_category(username, category_id):
            raise not_found(f"Category with ID {category_id} not found")
    return deleted("Category", ids)


# ============================================================================
# SUBCATEGORY ENDPOINTS
# ============================================================================

@router.get("/categories/{category_id}/subcategories")
async def get_subcategories(
    category_id: int,
    username: str = Depends(get_current_username),
    subcategories: SubcategoryManager = Depends(subcategory_manager)
):
    """Get all subcategories of a category."""
    check_valid(validate_ids(category_id=category_id))
    result = await subcategories.get_all_subcategories(username, category_id)
    if result is None:
        raise not_found(f"Category with ID {category_id} not found")
    return result


@router.get("/categories/{category_id}/subcategories/{subcategory_id}")
async def get_subcategory(
    category_id: int,
    subcategory_id: int,
    username: str = Depends(get_current_username),
    subcategories: SubcategoryManager = Depends(subcategory_manager)
):
    """Get a specific subcategory of a category."""
    check_valid(validate_ids(category_id=category_id, subcategory_id=subcategory_id))
    subcategory = await subcategories.get_subcategory(username, category_id, subcategory_id)
    if not subcategory:
        raise not_found(f"Subcategory with ID {subcategory_id} not found")
    return subcategory


@router.post("/categories/{category_ids}/subcategories", status_code=201)
async def add_subcategories(
    category_ids: str,
    payload: Union[List[SubcategoryPayload], SubcategoryPayload],
    username: str = Depends(get_current_username),
    subcategories: SubcategoryManager = Depends(subcategory_manager),
    colours: ColourManager = Depends(colour_manager)
):
    """Create subcategories; with several category IDs each payload goes to the category at its position."""
    ids = path_ids(category_ids, "category_id")
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    targets = pair_ids(ids, items, "category_ids", "payloads")
    for item in items:
        check_valid(validate_named_data(item, "subcategory"))
        await check_colour(colours, item['colour_id'])

    created = []
    for category_id, item in targets:
        subcategory = await subcategories.add_subcategory(username, category_id, item)
        if not subcategory:
            raise not_found(f"Category with ID {category_id} not found")
        created.append(subcategory)

    return created if is_batch else created[0]


@router.patch("/categories/{category_ids}/subcategories/{subcategory_ids}")
async def update_subcategories(
    category_ids: str,
    subcategory_ids: str,
    payload: Union[List[SubcategoryPayload], SubcategoryPayload],
    username: str = Depends(get_current_username),
    subcategories: SubcategoryManager = Depends(subcategory_manager),
    colours: ColourManager = Depends(colour_manager)
):
    """Update one or more subcategories; a category_id in the body moves it to another category."""
    pairs = pair_ids(
        path_ids(category_ids, "category_id"), path_ids(subcategory_ids, "subcategory_id"),
        "category_ids", "subcategory_ids"
    )
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    check_valid(validate_matching_counts(subcategory_ids=len(pairs), payloads=len(items)))
    for item in items:
        check_valid(validate_named_patch(item, "subcategory"))
        await check_colour(colours, item['colour_id'])

    updated = []
    for (category_id, subcategory_id), item in zip(pairs, items):
        subcategory = await subcategories.update_subcategory(username, category_id, subcategory_id, item)
        if not subcategory:
            raise not_found(f"Subcategory with ID {subcategory_id} not found")
        updated.append(subcategory)

    return updated if is_batch else updated[0]


@router.delete("/categories/{category_ids}/subcategories/{subcategory_ids}")
async def delete_subcategories(
    category_ids: str,
    subcategory_ids: str,
    username: str = Depends(get_current_username),
    subcategories: SubcategoryManager = Depends(subcategory_manager)
):
    """Delete one or more subcategories with their entries."""
    pairs = pair_ids(
        path_ids(category_ids, "category_id"), path_ids(subcategory_ids, "subcategory_id"),
        "category_ids", "subcategory_ids"
    )
    for category_id, subcategory_id in pairs:
        if not await subcategories.delete_subcategory(username, category_id, subcategory_id):
            raise not_found(f"Subcategory with ID {subcategory_id} not found")
    return deleted("Subcategory", [subcategory_id for _, subcategory_id in pairs])


# ============================================================================
# ENTRY ENDPOINTS
# ============================================================================

@router.get("/subcategories/{subcategory_id}/entries")
async def get_entries(
    subcategory_id: int,
    username: str = Depends(get_current_username),
    entries: EntryManager = Depends(entry_manager)
):
    """Get all entries of a subcategory."""
    check_valid(validate_ids(subcategory_id=subcategory_id))
    result = await entries.get_all_entries(username, subcategory_id)
    if result is None:
        raise not_found(f"Subcategory with ID {subcategory_id} not found")
    return result


@router.get("/subcategories/{subcategory_id}/entries/{entry_id}")
async def get_entry(
    subcategory_id: int,
    entry_id: int,
    username: str = Depends(get_current_username),
    entries: EntryManager = Depends(entry_manager)
):
    """Get a specific entry of a subcategory."""
    check_valid(validate_ids(subcategory_id=subcategory_id, entry_id=entry_id))
    entry = await entries.get_entry(username, subcategory_id, entry_id)
    if not entry:
        raise not_found(f"Entry with ID {entry_id} not found")
    return entry


@router.post("/subcategories/{subcategory_ids}/entries", status_code=201)
async def add_entries(
    subcategory_ids: str,
    payload: Union[List[EntryPayload], EntryPayload],
    username: str = Depends(get_current_username),
    entries: EntryManager = Depends(entry_manager)
):
    """Create entries; with several subcategory IDs each payload goes to the subcategory at its position."""
    ids = path_ids(subcategory_ids, "subcategory_id")
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    targets = pair_ids(ids, items, "subcategory_ids", "payloads")
    for item in items:
        check_valid(validate_entry_data(item))

    created = []
    for subcategory_id, item in targets:
        entry = await entries.add_entry(username, subcategory_id, item)
        if not entry:
            raise not_found(f"Subcategory with ID {subcategory_id} not found")
        created.append(entry)

    return created if is_batch else created[0]


@router.patch("/subcategories/{subcategory_ids}/entries/{entry_ids}")
async def update_entries(
    subcategory_ids: str,
    entry_ids: str,
    payload: Union[List[EntryPayload], EntryPayload],
    username: str = Depends(get_current_username),
    entries: EntryManager = Depends(entry_manager)
):
    """Update one or more entries; a subcategory_id in the body moves it to another subcategory."""
    pairs = pair_ids(
        path_ids(subcategory_ids, "subcategory_id"), path_ids(entry_ids, "entry_id"),
        "subcategory_ids", "entry_ids"
    )
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    check_valid(validate_matching_counts(entry_ids=len(pairs), payloads=len(items)))
    for item in items:
        check_valid(validate_entry_patch(item))

    updated = []
    for (subcategory_id, entry_id), item in zip(pairs, items):
        entry = await entries.update_entry(username, subcategory_id, entry_id, item)
        if not entry:
            raise not_found(f"Entry with ID {entry_id} not found")
        updated.append(entry)

    return updated if is_batch else updated[0]


@router.delete("/subcategories/{subcategory_ids}/entries/{entry_ids}")
async def delete_entries(
    subcategory_ids: str,
    entry_ids: str,
    username: str = Depends(get_current_username),
    entries: EntryManager = Depends(entry_manager)
):
    """Delete one or more entries."""
    pairs = pair_ids(
        path_ids(subcategory_ids, "subcategory_id"), path_ids(entry_ids, "entry_id"),
        "subcategory_ids", "entry_ids"
    )
    for subcategory_id, entry_id in pairs:
        if not await entries.delete_entry(username, subcategory_id, entry_id):
            raise not_found(f"Entry with ID {entry_id} not found")
    return deleted("Entry", [entry_id for _, entry_id in pairs])


# ============================================================================
# LABEL ENDPOINTS
# ============================================================================

@router.get("/labels")
async def get_labels(
    username: str = Depends(get_current_username),
    labels: LabelManager = Depends(label_manager)
):
    """Get all labels of the authenticated user."""
    return await labels.get_all_labels(username)


@router.get("/labels/{label_id}")
async def get_label(
    label_id: int,
    username: str = Depends(get_current_username),
    labels: LabelManager = Depends(label_manager)
):
    check_valid(validate_ids(label_id=label_id))
    label = await labels.get_label(username, label_id)
    if not label:
        raise not_found(f"Label with ID {label_id} not found")
    return label


@router.get("/labels/{label_id}/sum")
async def get_label_sum(
    label_id: int,
    username: str = Depends(get_current_username),
    labels: LabelManager = Depends(label_manager)
):
    """Get the sum of all entry amounts carrying a label."""
    check_valid(validate_ids(label_id=label_id))
    total = await labels.get_label_sum(username, label_id)
    if total is None:
        raise not_found(f"Label with ID {label_id} not found")
    return {"label_id": label_id, "sum": total}


@router.post("/labels", status_code=201)
async def add_labels(
    payload: Union[List[LabelPayload], LabelPayload],
    username: str = Depends(get_current_username),
    labels: LabelManager = Depends(label_manager),
    colours: ColourManager = Depends(colour_manager)
):
    """Create one label or a list of labels."""
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    for item in items:
        check_valid(validate_named_data(item, "label"))
        await check_colour(colours, item['colour_id'])

    created = []
    for item in items:
        label = await labels.add_label(username, item)
        if not label:
            raise not_found("User not found")
        created.append(label)

    return created if is_batch else created[0]


@router.patch("/labels/{label_ids}")
async def update_labels(
    label_ids: str,
    payload: Union[List[LabelPayload], LabelPayload],
    username: str = Depends(get_current_username),
    labels: LabelManager = Depends(label_manager),
    colours: ColourManager = Depends(colour_manager)
):
    """Update one label, or several ("1,2,3") paired in order with a list body."""
    ids = path_ids(label_ids, "label_id")
    items, is_batch = as_batch(payload)
    check_valid(validate_batch(items))
    check_valid(validate_matching_counts(label_ids=len(ids), payloads=len(items)))
    for item in items:
        check_valid(validate_named_patch(item, "label"))
        await check_colour(colours, item['colour_id'])

    updated = []
    for label_id, item in zip(ids, items):
        label = await labels.update_label(username, label_id, item)
        if not label:
            raise not_found(f"Label with ID {label_id} not found")
        updated.append(label)

    return updated if is_batch else updated[0]


@router.delete("/labels/{label_ids}")
async def delete_labels(
    label_ids: str,
    username: str = Depends(get_current_username),
    labels: LabelManager = Depends(label_manager)
):
    ids = path_ids(label_ids, "label_id")
    for label_id in ids:
        if not await labels.delete_label(username, label_id):
            raise not_found(f"Label with ID {label_id} not found")
    return deleted("Label", ids)


# ============================================================================
# ENTRY LABEL ENDPOINTS
# ============================================================================

@router.get("/entries/{entry_ids}/labels")
async def get_labels_for_entries(
    entry_ids: str,
    username: str = Depends(get_current_username),
    entry_labels: EntryLabelManager = Depends(entry_label_manager)
):
    """Get the labels attached to an entry; several IDs return one list per entry."""
    ids = path_ids(entry_ids, "entry_id")
    results = []
    for entry_id in ids:
        result = await entry_labels.get_labels_for_entry(username, entry_id)
        if result is None:
            raise not_found(f"Entry with ID {entry_id} not found")
        results.append(result)
    return results if len(ids) > 1 else results[0]


@router.get("/labels/{label_id}/entries")
async def get_entries_for_label(
    label_id: int,
    username: str = Depends(get_current_username),
    entry_labels: EntryLabelManager = Depends(entry_label_manager)
):
    """Get the entries carrying a label."""
    check_valid(validate_ids(label_id=label_id))
    result = await entry_labels.get_entries_for_label(username, label_id)
    if result is None:
        raise not_found(f"Label with ID {label_id} not found")
    return result


@router.post("/entries/{entry_ids}/labels/{label_ids}", status_code=201)
async def add_labels_to_entries(
    entry_ids: str,
    label_ids: str,
    username: str = Depends(get_current_username),
    entry_labels: EntryLabelManager = Depends(entry_label_manager)
):
    """Attach labels to entries, pairing the two ID lists in order."""
    pairs = pair_ids(path_ids(entry_ids, "entry_id"), path_ids(label_ids, "label_id"), "entry_ids", "label_ids")

    links = []
    for entry_id, label_id in pairs:
        try:
            link = await entry_labels.add_label_to_entry(username, entry_id, label_id)
        except DuplicateRecordError as e:
            raise HTTPException(status_code=400, detail={"errors": [str(e)]})
        if not link:
            raise not_found(f"Entry with ID {entry_id} or label with ID {label_id} not found")
        links.append(link)

    return links if len(pairs) > 1 else links[0]


@router.delete("/entries/{entry_ids}/labels/{label_ids}")
async def remove_labels_from_entries(
    entry_ids: str,
    label_ids: str,
    username: str = Depends(get_current_username),
    entry_labels: EntryLabelManager = Depends(entry_label_manager)
):
    """Detach labels from entries, pairing the two ID lists in order."""
    pairs = pair_ids(path_ids(entry_ids, "entry_id"), path_ids(label_ids, "label_id"), "entry_ids", "label_ids")

    for entry_id, label_id in pairs:
        if not await entry_labels.remove_label_from_entry(username, entry_id, label_id):
            raise not_found(f"Label with ID {label_id} is not attached to entry with ID {entry_id}")

    if len(pairs) == 1:
        entry_id, label_id = pairs[0]
        return {"success": True, "detail": f"Label {label_id} removed from entry {entry_id}."}
    return {"success": True, "detail": f"{len(pairs)} labels removed from entries."}


# ============================================================================
# APPLICATION SETUP
# ============================================================================

def create_app(app_config: AppConfig = None, user_cache: UserCache = None) -> FastAPI:
    """Build the application with its managers wired to app.state.

    Without an explicit user_cache the process-wide cache is used.
    """
    app_config = app_config or config
    app = FastAPI(title="Secure Finance Manager")

    if user_cache is None:
        user_cache = UserCache.get_instance()
    cipher = FieldCipher(app_config.ENCRYPTION_KEY, app_config.ENCRYPTION_SALT, app_config.KDF_ITERATIONS)
    db_file = app_config.DB_FILE

    app.state.config = app_config
    app.state.user_cache = user_cache
    app.state.db_manager = DatabaseManager(db_file)
    app.state.colour_manager = ColourManager(db_file)
    app.state.user_manager = UserManager(db_file, user_cache, app_config.BCRYPT_ROUNDS)
    app.state.category_manager = CategoryManager(db_file, cipher, user_cache)
    app.state.subcategory_manager = SubcategoryManager(db_file, cipher, user_cache)
    app.state.label_manager = LabelManager(db_file, cipher, user_cache)
    app.state.entry_manager = EntryManager(db_file, cipher, user_cache)
    app.state.entry_label_manager = EntryLabelManager(db_file, cipher, user_cache)

    @app.on_event("startup")
    async def startup_event():
        """Initialize the database and load the identity cache."""
        await app.state.db_manager.initialize_database()
        logger.info("Database initialized successfully.")
        await app.state.user_manager.load_identity_cache()

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()]
        return JSONResponse(status_code=400, content={"detail": {"errors": errors}})

    @app.exception_handler(DatabaseError)
    async def database_error_handler(request: Request, exc: DatabaseError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Database error"})

    @app.exception_handler(DecryptionError)
    async def decryption_error_handler(request: Request, exc: DecryptionError):
        logger.error(f"Decryption error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Stored data could not be decrypted"})

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    app.include_router(router, prefix=app_config.BASE_PATH)
    return app


app = create_app()


# ============================================================================
# APPLICATION ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
