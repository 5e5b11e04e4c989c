from __future__ import annotations

# ── Permission names (stored in the permissions table) ────────────────────────
P_CREATE_USERS      = "CREAR_USUARIOS"
P_DELETE_USERS      = "ELIMINAR_USUARIOS"
P_GRANT             = "DAR_PERMISOS"
P_REVOKE            = "QUITAR_PERMISOS"
P_CHARGE            = "COBRAR"
P_OPEN_REGISTER     = "ABRIR_CAJA"
P_CLOSE_REGISTER    = "CERRAR_CAJA"
P_REFUNDS           = "REALIZAR_DEVOLUCIONES"
P_ADD_PRODUCTS      = "AGREGAR_PRODUCTOS"
P_DELETE_PRODUCTS   = "ELIMINAR_PRODUCTOS"
P_EDIT_PRODUCTS     = "EDITAR_PRODUCTOS"
P_VIEW_COSTINGS     = "VER_COSTEOS"
P_MAKE_COSTINGS     = "REALIZAR_COSTEOS"
P_DELETE_COSTINGS   = "ELIMINAR_COSTEOS"
P_RECORD_EXPENSES   = "REGISTRAR_GASTOS"
P_VIEW_EXPENSES     = "VER_GASTOS"
P_DELETE_EXPENSES   = "ELIMINAR_GASTOS"
P_VIEW_REPORTS      = "VER_REPORTES"
P_MANAGE_PRODUCTS   = "GESTIONAR_PRODUCTOS"
P_MANAGE_USERS      = "GESTIONAR_USUARIOS"
P_MANAGE_EXPENSES   = "GESTIONAR_GASTOS"
P_MANAGE_COSTINGS   = "GESTIONAR_COSTEOS"
P_VIEW_RECEIPTS     = "VER_RECIBOS"
P_MANAGE_INVENTORY  = "GESTIONAR_INVENTARIO"

# Complete ordered catalog (seeded once into an empty permissions table)
ALL_PERMISSION_NAMES: list[str] = [
    P_CREATE_USERS,
    P_DELETE_USERS,
    P_GRANT,
    P_REVOKE,
    P_CHARGE,
    P_OPEN_REGISTER,
    P_CLOSE_REGISTER,
    P_REFUNDS,
    P_ADD_PRODUCTS,
    P_DELETE_PRODUCTS,
    P_EDIT_PRODUCTS,
    P_VIEW_COSTINGS,
    P_MAKE_COSTINGS,
    P_DELETE_COSTINGS,
    P_RECORD_EXPENSES,
    P_VIEW_EXPENSES,
    P_DELETE_EXPENSES,
    P_VIEW_REPORTS,
    P_MANAGE_PRODUCTS,
    P_MANAGE_USERS,
    P_MANAGE_EXPENSES,
    P_MANAGE_COSTINGS,
    P_VIEW_RECEIPTS,
    P_MANAGE_INVENTORY,
]

# Screen -> permission required to open it (None = public)
ROUTE_PERMISSIONS: dict[str, str | None] = {
    "login":      None,
    "caja":       P_CHARGE,
    "productos":  P_MANAGE_PRODUCTS,
    "usuarios":   P_MANAGE_USERS,
    "register":   P_CREATE_USERS,
    "permisos":   P_GRANT,
    "gastos":     P_MANAGE_EXPENSES,
    "costeos":    P_MANAGE_COSTINGS,
    "recibos":    P_VIEW_RECEIPTS,
    "reportes":   P_VIEW_REPORTS,
    "inventario": P_MANAGE_INVENTORY,
}

# Reason written on the movement created with an item's opening stock
INITIAL_STOCK_REASON = "Carga inicial"

# AUTH MESSAGES
ERROR_INVALID_CREDENTIALS = "Invalid username or password"
ERROR_USERNAME_TAKEN      = "Username is already in use"
