import os
import logging
import subprocess
import tempfile

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ["synchrony", "deobfuscate"]
COMMAND_ENV = "MANGASIN_DEOBFUSCATOR"


class SynchronyDeobfuscator:
    """调用外部 synchrony 命令还原 obfuscator.io 混淆的脚本

    命令形如 ``<command> <input.js> --output <output.js>``，
    可通过 MANGASIN_DEOBFUSCATOR 环境变量替换。
    """

    def __init__(self, command=None, timeout=60):
        if command is None:
            env_command = os.environ.get(COMMAND_ENV, "").split()
            command = env_command or DEFAULT_COMMAND
        self.command = list(command)
        self.timeout = timeout

    def deobfuscate(self, script):
        """反混淆脚本

        Args:
            script: 混淆后的脚本文本

        Returns:
            str: 反混淆后的文本，失败时返回None
        """
        with tempfile.TemporaryDirectory() as tmp_dir:
            input_path = os.path.join(tmp_dir, "script.js")
            output_path = os.path.join(tmp_dir, "script.cleaned.js")
            with open(input_path, "w", encoding="utf-8") as f:
                f.write(script)

            try:
                result = subprocess.run(
                    [*self.command, input_path, "--output", output_path],
                    capture_output=True,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    timeout=self.timeout,
                )
            except (OSError, subprocess.SubprocessError) as e:
                logger.warning("调用反混淆命令失败: %s", e)
                return None
            if result.returncode != 0:
                logger.warning("反混淆命令退出码 %s: %s", result.returncode, result.stderr.strip())
                return None
            if not os.path.exists(output_path):
                logger.warning("反混淆命令没有生成输出文件")
                return None

            with open(output_path, "r", encoding="utf-8") as f:
                return f.read()
