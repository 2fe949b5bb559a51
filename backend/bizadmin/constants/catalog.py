"""Reference data loaded by the seed routines."""
from __future__ import annotations
from typing import Any, Dict, List

ACTIONS: List[str] = ['ver', 'crear', 'editar', 'estado', 'exportar', 'eliminar']

# Modules with submodules get these on every submodule; modules without get the other set.
SUBMODULE_ACTIONS = ['ver', 'exportar']
MODULE_ACTIONS = ['ver', 'crear', 'editar', 'estado']

SECTIONS: List[Dict[str, Any]] = [
    {'name': 'Dashboard', 'order': 1, 'visibility': True, 'modules': [
        {'name': 'Dashboard', 'route': '/dashboard', 'icon_name': 'DashboardCustomizeIcon'},
    ]},
    {'name': 'Ventas', 'order': 2, 'visibility': True, 'modules': [
        {'name': 'Caja', 'route': '/cash', 'icon_name': 'AccountBalanceWalletIcon'},
        {'name': 'Ventas', 'route': '/sales', 'icon_name': 'PointOfSaleIcon'},
        {'name': 'Cotizaciones', 'route': '/quotation', 'icon_name': 'RequestQuoteIcon'},
        {'name': 'Devoluciones', 'route': '/return', 'icon_name': 'ReplayCircleFilledIcon'},
    ]},
    {'name': 'Clientes', 'order': 3, 'visibility': True, 'modules': [
        {'name': 'Clientes', 'route': '/client', 'icon_name': 'PeopleAltIcon'},
        {'name': 'Categoria de Clientes', 'route': '/client-categories', 'icon_name': 'GroupWorkIcon'},
    ]},
    {'name': 'Compras', 'order': 4, 'visibility': True, 'modules': [
        {'name': 'Compras', 'route': '/purchase', 'icon_name': 'ShoppingBagIcon'},
        {'name': 'Proveedores', 'route': '/supplier', 'icon_name': 'LocalMallIcon'},
        {'name': 'Categoria de Proveedores', 'route': '/supplier-categories', 'icon_name': 'Diversity3Icon'},
    ]},
    {'name': 'Almacen', 'order': 5, 'visibility': True, 'modules': [
        {'name': 'Productos', 'route': '/product', 'icon_name': 'Inventory2Icon'},
        {'name': 'Categoria de Productos', 'route': '/product-categories', 'icon_name': 'CategoryIcon'},
        {'name': 'Tipo de Moneda', 'route': '/currency', 'icon_name': 'AttachMoneyIcon'},
        {'name': 'Tipos de precio', 'route': '/price-types', 'icon_name': 'PriceChangeIcon'},
        {'name': 'Unidad de medida', 'route': '/unit-measurement', 'icon_name': 'StraightenIcon'},
        {'name': 'Tipo de cambio', 'route': '/exchange-rate', 'icon_name': 'CurrencyExchangeIcon'},
        {'name': 'Inventario', 'route': '/inventory', 'icon_name': 'Inventory2Icon'},
    ]},
    {'name': 'Empresa', 'order': 6, 'visibility': True, 'modules': [
        {'name': 'Datos de la empresa', 'route': '/company', 'icon_name': 'BusinessCenterIcon'},
        {'name': 'Sucursales', 'route': '/subsidiary', 'icon_name': 'StoreIcon'},
    ]},
    {'name': 'Usuarios y Roles', 'order': 7, 'visibility': True, 'modules': [
        {'name': 'Usuarios', 'route': '/user', 'icon_name': 'PersonOutlineIcon'},
        {'name': 'Roles', 'route': '/role', 'icon_name': 'AdminPanelSettingsIcon'},
    ]},
    {'name': 'Finanzas', 'order': 8, 'visibility': True, 'modules': [
        {'name': 'Gastos', 'route': '/expense', 'icon_name': 'PaymentsOutlinedIcon'},
        {'name': 'Categorias de gastos', 'route': '/expense-categories', 'icon_name': 'CategoryIcon'},
        {'name': 'Ingresos extraordinarios', 'route': '/income', 'icon_name': 'PaidIcon'},
        {'name': 'Categoria de Ingresos', 'route': '/income-categories', 'icon_name': 'Diversity3Icon'},
    ]},
    {'name': 'Reportes', 'order': 9, 'visibility': True, 'modules': [
        {'name': 'Ventas', 'icon_name': 'BarChartIcon', 'submodules': [
            {'name': 'Cierres de Caja', 'route': '/report/cash-closures'},
            {'name': 'Actividad de Ventas', 'route': '/report/sales-activity'},
            {'name': 'Inactividad de productos', 'route': '/report/inactive-products'},
            {'name': 'Ventas por producto', 'route': '/report/sales-by-product'},
        ]},
        {'name': 'Clientes', 'icon_name': 'SummarizeIcon', 'submodules': [
            {'name': 'Actividad de Clientes', 'route': '/report/client-activity'},
        ]},
        {'name': 'Compras', 'icon_name': 'InsightsOutlinedIcon', 'submodules': [
            {'name': 'Compras por proveedor', 'route': '/report/purchases-by-supplier'},
            {'name': 'Compras por producto', 'route': '/report/purchases-by-product'},
        ]},
        {'name': 'Sucursales', 'icon_name': 'SummarizeIcon', 'submodules': [
            {'name': 'Actividad por sucursal', 'route': '/report/subsidiary-activity'},
        ]},
        {'name': 'Usuarios', 'icon_name': 'PersonOutlineIcon', 'submodules': [
            {'name': 'Actividad por usuario', 'route': '/report/user-activity'},
        ]},
        {'name': 'Finanzas', 'icon_name': 'PaidIcon', 'submodules': [
            {'name': 'Reporte de gastos', 'route': '/report/expense'},
            {'name': 'Reporte de ingresos', 'route': '/report/income'},
        ]},
    ]},
    {'name': 'Administracion', 'order': 99, 'visibility': False, 'modules': [
        {'name': 'Tenant', 'route': '/admin/tenant', 'icon_name': 'GroupWorkIcon'},
        {'name': 'Sucursales', 'route': '/admin/subsidiary', 'icon_name': 'StoreIcon'},
        {'name': 'Roles y Permisos', 'route': '/admin/roles-permissions', 'icon_name': 'AdminPanelSettingsIcon'},
        {'name': 'Configuracion', 'route': '/admin/settings', 'icon_name': 'SettingsIcon'},
    ]},
]

DEMO_TENANTS: List[Dict[str, Any]] = [
    {'name': 'PERU - JUGUETERIA', 'description': 'Tenant principal en Peru', 'country': 'Peru', 'city': 'Lima'},
    {'name': 'BOLIVIA - MATERIAL DE ESCRITORIO', 'description': 'Tenant principal en Bolivia', 'country': 'Bolivia', 'city': 'Santa Cruz'},
]

# (display name, template, username prefix)
DEMO_ROLES = [
    ('Super.Admin', 'SUPER_ADMIN', 'superadmin'),
    ('Admin', 'ADMIN', 'admin'),
    ('Vendedor', 'VENDEDOR', 'vendedor'),
    ('Almacen', 'ALMACEN', 'almacen'),
]

WORKWEEK = ('LUNES', 'VIERNES')
SUBSIDIARY_HOURS = ('08:00', '18:00')
USER_HOURS = ('08:00', '16:00')
