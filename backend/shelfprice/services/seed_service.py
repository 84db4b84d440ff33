"""Seed service for initial data"""
from sqlalchemy import select

from shelfprice.core.database import AsyncSessionLocal
from shelfprice.core.logging import get_logger
from shelfprice.models.store import Store
from shelfprice.models.product import Product

logger = get_logger("shelfprice.seed")


async def seed_data(session_factory=AsyncSessionLocal):
    """Seed sample stores and products if empty"""
    async with session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(Store).limit(1))
        if result.scalar_one_or_none():
            return False  # Already seeded

        stores = [
            Store(name='Continente Colombo', address='Av. Lusiada, Lisboa'),
            Store(name='Pingo Doce Saldanha', address='Av. da Republica 10, Lisboa'),
            Store(name='Lidl Alcantara', address='Rua Fradesso da Silveira, Lisboa'),
            Store(name='Mercadona Amadora', address='Av. Conde Castro Guimaraes, Amadora'),
        ]

        products = [
            Product(barcode='5601312000011', name='Leite Meio Gordo 1L', brand='Mimosa'),
            Product(barcode='5601009970013', name='Arroz Carolino 1kg', brand='Cigala'),
            Product(barcode='5600380330017', name='Azeite Virgem Extra 750ml', brand='Gallo'),
            Product(barcode='5601151333318', name='Cafe Moido 250g', brand='Delta'),
            Product(barcode='5602112000018', name='Ovos Classe M x12', brand=None),
        ]

        db.add_all(stores)
        db.add_all(products)
        await db.commit()
        logger.info("Database seeded with %d stores and %d products", len(stores), len(products))
        return True
