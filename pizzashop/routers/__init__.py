# pizzashop/routers/__init__.py
