# apps/catalog/repositories.py
"""
Product catalog: one document (`ProductMaster/masterData`) holding
`{data: {category: [{id, name}, ...]}}`.

Every change is a read-modify-write of the whole document inside a store
transaction, so two concurrent edits of different categories never
overwrite each other.
"""
import logging
import uuid

from apps.core.exceptions import DocumentNotFoundError, DuplicateCategoryError
from apps.core.repositories import DocumentRepository

logger = logging.getLogger(__name__)


class ProductCatalogRepository(DocumentRepository):
    collection = 'ProductMaster'
    document_id = 'masterData'

    def get_catalog(self):
        """category -> items; an absent document is an empty catalog"""
        data = self.store.get_document(self.collection, self.document_id) or {}
        return data.get('data') or {}

    def _change(self, mutate):
        """Run `mutate(categories)` on a fresh copy of the catalog and write it back atomically"""
        def apply(transaction):
            document = transaction.get(self.collection, self.document_id) or {}
            categories = document.get('data') or {}
            result = mutate(categories)
            transaction.set(self.collection, self.document_id, {**document, 'data': categories})
            return result

        return self.store.run_transaction(apply)

    @staticmethod
    def _items(categories, category):
        if category not in categories:
            raise DocumentNotFoundError({'message': f'Category "{category}" not found.'})
        return categories[category]

    def add_category(self, name):
        """Names are unique and case-sensitive"""
        def mutate(categories):
            if name in categories:
                raise DuplicateCategoryError()
            categories[name] = []

        self._change(mutate)
        logger.info(f"Added product category '{name}'")

    def delete_category(self, name):
        """Drop a category with its items; a missing category is a no-op"""
        def mutate(categories):
            categories.pop(name, None)

        self._change(mutate)
        logger.info(f"Deleted product category '{name}'")

    def add_item(self, category, name):
        item = {'id': str(uuid.uuid4()), 'name': name.strip()}

        def mutate(categories):
            self._items(categories, category).append(item)

        self._change(mutate)
        logger.info(f"Added item {item['id']} to '{category}'")
        return item

    def edit_item(self, category, item_id, name):
        def mutate(categories):
            for item in self._items(categories, category):
                if item.get('id') == item_id:
                    item['name'] = name.strip()
                    return dict(item)
            raise DocumentNotFoundError({'message': 'Item not found.'})

        item = self._change(mutate)
        logger.info(f"Renamed item {item_id} in '{category}'")
        return item

    def delete_item(self, category, item_id):
        """Remove one item; an unknown item id is a no-op"""
        def mutate(categories):
            items = self._items(categories, category)
            categories[category] = [item for item in items if item.get('id') != item_id]

        self._change(mutate)
        logger.info(f"Deleted item {item_id} from '{category}'")
