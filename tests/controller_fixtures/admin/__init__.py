def status(context):
    return {"ok": True}
