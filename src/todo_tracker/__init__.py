"""Task tracker core: task aggregate, store, service and reminder sweep."""
