def listPets(context):
    return [{"id": 1, "name": "Rex"}]
